"""Shared fixtures: a recording command runner and a small workspace."""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from shipyard.config import ShipyardConfig
from shipyard.models.workspace import ToolchainPin, ToolchainPins, Workspace
from shipyard.services.commands import CommandResult, CommandRunner, CommandTemplates


Responder = Callable[[List[str]], Tuple[int, str]]


class FakeRunner(CommandRunner):
    """Records every command instead of executing it."""

    def __init__(self, responder: Optional[Responder] = None):
        super().__init__(Path("."))
        self.responder = responder or (lambda argv: (0, ""))
        self.calls: List[List[str]] = []
        self.envs: List[Optional[Dict[str, str]]] = []

    def run(self, argv, capture=False, env=None) -> CommandResult:
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(dict(env) if env else None)
        code, output = self.responder(argv)
        if not capture:
            return CommandResult(argv=argv, returncode=code)
        return CommandResult(argv=argv, returncode=code, stdout=output.encode(), stderr=b"")

    def called_with(self, *fragments: str) -> List[List[str]]:
        return [c for c in self.calls if all(f in c for f in fragments)]


def fail_when(*fragments: str, code: int = 1, output: str = "") -> Responder:
    """Responder failing every command that contains all ``fragments``."""
    def responder(argv: List[str]) -> Tuple[int, str]:
        if all(f in argv for f in fragments):
            return code, output
        return 0, ""
    return responder


@pytest.fixture
def pins() -> ToolchainPins:
    return ToolchainPins(
        toolchain=ToolchainPin(name="toolchain", version="nightly-2024-11-22"),
        platform=ToolchainPin(name="platform", version="2.2.0"),
    )


@pytest.fixture
def templates(pins) -> CommandTemplates:
    return CommandTemplates(pins)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def workspace_data(tmp_path) -> dict:
    return {
        "root": tmp_path,
        "packages": [
            {"name": "core", "version": "1.0.0"},
            {"name": "keys", "version": "1.0.0", "dependencies": ["core"]},
            {
                "name": "harness",
                "version": "1.0.0",
                "dependencies": ["core", "keys", "serde"],
                "dev_dependencies": ["criterion"],
                "features": {"x": [], "y": [], "z": []},
            },
            {"name": "cli", "version": "1.0.0", "dependencies": ["harness"]},
        ],
        "test_programs": [
            {"name": "cpi-target", "manifest": "test-programs/cpi-target/Cargo.toml"},
            {"name": "primary", "manifest": "test-programs/primary/Cargo.toml"},
        ],
    }


@pytest.fixture
def workspace(workspace_data) -> Workspace:
    return Workspace.model_validate(workspace_data)


@pytest.fixture
def config(tmp_path) -> ShipyardConfig:
    return ShipyardConfig(workspace_root=tmp_path, _env_file=None)


@pytest.fixture
def no_sleep() -> List[float]:
    """Collects requested waits instead of sleeping."""
    return []
