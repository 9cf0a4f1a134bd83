"""Tests for the Test-Program Builder."""

import pytest

from shipyard.engine.programs import TestProgramBuilder
from shipyard.exceptions import TestProgramBuildFailure
from shipyard.models.workspace import Workspace

from tests.conftest import FakeRunner


def manifest_of(argv):
    return argv[argv.index("--manifest-path") + 1]


def test_builds_every_program(workspace, templates, tmp_path):
    runner = FakeRunner()
    out_dir = tmp_path / "target" / "deploy"

    built = TestProgramBuilder(runner, templates, out_dir).build(workspace)

    assert built == ["cpi-target", "primary"]
    assert [manifest_of(c) for c in runner.calls] == [
        "test-programs/cpi-target/Cargo.toml",
        "test-programs/primary/Cargo.toml",
    ]
    assert all(str(out_dir) in c for c in runner.calls)
    assert out_dir.is_dir()


def test_first_failure_aborts_the_rest(workspace_data, templates, tmp_path):
    workspace_data["test_programs"].append({"name": "custom-syscall", "manifest": "tp/custom/Cargo.toml"})
    workspace = Workspace.model_validate(workspace_data)
    runner = FakeRunner(lambda argv: (2, "") if "test-programs/primary/Cargo.toml" in argv else (0, ""))

    with pytest.raises(TestProgramBuildFailure) as exc_info:
        TestProgramBuilder(runner, templates, tmp_path / "deploy").build(workspace)

    assert exc_info.value.artifact == "primary"
    assert exc_info.value.exit_code == 2
    assert exc_info.value.stage == "build-test-programs"
    assert len(runner.calls) == 2


def test_always_rebuilds_over_existing_artifacts(workspace, templates, tmp_path):
    out_dir = tmp_path / "deploy"
    out_dir.mkdir()
    (out_dir / "primary.so").write_bytes(b"stale")
    runner = FakeRunner()

    TestProgramBuilder(runner, templates, out_dir).build(workspace)
    TestProgramBuilder(runner, templates, out_dir).build(workspace)

    assert len(runner.calls) == 4
    assert (out_dir / "primary.so").read_bytes() == b"stale"
