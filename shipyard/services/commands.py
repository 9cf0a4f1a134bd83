"""
External command rendering and execution.

Every external tool (formatter, linter, compiler, auditor, registry client)
is an opaque command line. Command lines are Jinja2 templates rendered with
the version pins and per-call context, then executed one at a time on the
calling thread with no timeout.
"""

import os
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, TextIO

import structlog
from jinja2 import Environment, StrictUndefined, TemplateError

from shipyard.exceptions import ConfigurationError, ExternalToolFailure
from shipyard.models.workspace import ToolchainPins

logger = structlog.get_logger()


DEFAULT_COMMANDS: Dict[str, str] = {
    "format": "cargo +{{ toolchain }} fmt --all",
    "format_check": "cargo +{{ toolchain }} fmt --all -- --check",
    "lint": "cargo +{{ toolchain }} clippy --all --all-features --all-targets -- -D warnings",
    "feature_check": (
        "cargo check --package {{ package }} --no-default-features"
        "{% if features %} --features {{ features | join(',') }}{% endif %}"
    ),
    "build": "cargo build",
    "test": "cargo test --all-features",
    "build_test_program": "cargo build-sbf --manifest-path {{ manifest | quote }} --sbf-out-dir {{ out_dir | quote }}",
    "audit": "cargo audit --json",
    "install_platform": "agave-install init {{ platform }}",
    "publish": "cargo publish --package {{ package }}",
}


class CommandTemplates:
    """
    Renders command lines from templates.

    Defaults above can be overridden per workspace under ``commands:`` in the
    manifest. Rendering is strict: a template referring to an unknown
    variable is a configuration error, not an empty string.
    """

    def __init__(self, pins: ToolchainPins, overrides: Optional[Mapping[str, str]] = None):
        self.pins = pins
        unknown = sorted(set(overrides or {}) - set(DEFAULT_COMMANDS))
        if unknown:
            raise ConfigurationError(f"Unknown command templates: {', '.join(unknown)}")
        self._templates = dict(DEFAULT_COMMANDS)
        self._templates.update(overrides or {})
        self._env = Environment(undefined=StrictUndefined, autoescape=False)
        self._env.filters["quote"] = lambda value: shlex.quote(str(value))

    def render(self, name: str, /, **context: Any) -> List[str]:
        """
        Render a command template into an argv list.

        Args:
            name: Template name, e.g. ``lint``
            context: Template variables in addition to ``toolchain``/``platform``

        Returns:
            The command as a list of arguments
        """
        try:
            template = self._env.from_string(self._templates[name])
            text = template.render(
                toolchain=self.pins.toolchain.version,
                platform=self.pins.platform.version,
                **context,
            )
        except KeyError:
            raise ConfigurationError(f"No command template named '{name}'")
        except TemplateError as e:
            raise ConfigurationError(f"Cannot render command '{name}': {e}")
        argv = shlex.split(text)
        if not argv:
            raise ConfigurationError(f"Command '{name}' rendered to an empty command line")
        return argv



def _forward(data: bytes, stream: TextIO) -> None:
    """Write captured bytes to an operator stream without re-encoding them."""
    if not data:
        return
    stream.flush()
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        stream.write(data.decode(errors="replace"))
    else:
        buffer.write(data)
        buffer.flush()
    stream.flush()


@dataclass
class CommandResult:
    """
    Completion of one external command.

    ``stdout`` and ``stderr`` hold the raw bytes when the command was run
    with ``capture=True`` and are None otherwise.
    """
    argv: List[str]
    returncode: int
    stdout: Optional[bytes] = None
    stderr: Optional[bytes] = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def captured(self) -> bool:
        return self.stdout is not None or self.stderr is not None

    @property
    def report(self) -> Optional[str]:
        """Captured stdout decoded for machine-readable output."""
        if self.stdout is None:
            return None
        return self.stdout.decode(errors="replace")

    @property
    def output(self) -> Optional[str]:
        """Captured stdout followed by stderr, decoded for diagnostics."""
        if not self.captured:
            return None
        return ((self.stdout or b"") + (self.stderr or b"")).decode(errors="replace")


class CommandRunner:
    """
    Runs external commands in the workspace root.

    Output is never transformed. By default the child inherits the
    operator's stdout/stderr. With ``capture=True`` both streams are
    collected as bytes, written through to the operator's stdout and stderr
    respectively, and also returned so callers can attach them to a failure
    report.
    """

    def __init__(self, cwd: Path, env: Optional[Mapping[str, str]] = None):
        self.cwd = cwd
        self.env = dict(env) if env is not None else None

    def _environ(self, extra: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
        if extra is None and self.env is None:
            return None
        environ = dict(os.environ if self.env is None else self.env)
        environ.update(extra or {})
        return environ

    def run(
        self,
        argv: Sequence[str],
        capture: bool = False,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """
        Run a command to completion. Blocks with no timeout.

        Args:
            argv: Command and arguments
            capture: Collect (and still forward) stdout and stderr
            env: Extra environment variables for this command only

        Returns:
            CommandResult with the raw exit status
        """
        argv = list(argv)
        logger.debug("command.start", argv=argv, cwd=str(self.cwd))
        try:
            if capture:
                proc = subprocess.run(
                    argv,
                    cwd=str(self.cwd),
                    env=self._environ(env),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
                _forward(proc.stdout, sys.stdout)
                _forward(proc.stderr, sys.stderr)
                result = CommandResult(
                    argv=argv,
                    returncode=proc.returncode,
                    stdout=proc.stdout or b"",
                    stderr=proc.stderr or b"",
                )
            else:
                proc = subprocess.run(argv, cwd=str(self.cwd), env=self._environ(env))
                result = CommandResult(argv=argv, returncode=proc.returncode)
        except OSError as e:
            # Shell statuses: 127 not found, 126 found but not executable
            returncode = 127 if isinstance(e, FileNotFoundError) else 126
            logger.error("command.not_executable", executable=argv[0], error=str(e), returncode=returncode)
            result = CommandResult(
                argv=argv,
                returncode=returncode,
                stdout=b"" if capture else None,
                stderr=str(e).encode() if capture else None,
            )

        logger.debug("command.finished", argv=argv, returncode=result.returncode)
        return result

    def check(
        self,
        argv: Sequence[str],
        stage: str,
        capture: bool = False,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """
        Run a command and raise if it fails.

        Raises:
            ExternalToolFailure: If the command exits non-zero
        """
        result = self.run(argv, capture=capture, env=env)
        if not result.ok:
            raise ExternalToolFailure(stage, result.returncode, result.argv)
        return result
