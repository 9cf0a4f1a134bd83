"""
Shipyard exceptions - structured error hierarchy.

Hierarchy::

    ShipyardError
      ├── ConfigurationError          ── bad manifest, missing credential
      ├── WorkspaceError              ── publish graph cannot be resolved
      │     ├── UnknownDependencyError  ── dependency on an unpublishable package
      │     ├── CycleDetectedError      ── dependency graph has a cycle
      │     └── PlanDriftError          ── declared order contradicts the graph
      ├── InvalidTransitionError      ── illegal publish state machine move
      ├── StageFailure                ── a pipeline stage failed
      │     ├── ExternalToolFailure     ── command exited non-zero
      │     │     ├── FeatureCombinationFailure
      │     │     └── TestProgramBuildFailure
      │     └── UnsuppressedAdvisory    ── audit found unsuppressed advisories
      └── PublishFailure              ── one package failed to publish
"""

from typing import Any, Dict, List, Optional, Sequence


class ShipyardError(Exception):
    """Base exception for all Shipyard errors."""

    pass


class ConfigurationError(ShipyardError):
    """Raised when the workspace manifest or runtime configuration is invalid."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class WorkspaceError(ShipyardError):
    """Raised when the workspace cannot be turned into a publish plan."""

    pass


class UnknownDependencyError(WorkspaceError):
    """Raised when a publishable package depends on a workspace package that is never published."""

    def __init__(self, package: str, missing: List[str]):
        self.package = package
        self.missing = missing
        super().__init__(
            f"Package '{package}' depends on unpublished workspace packages: {', '.join(missing)}"
        )


class CycleDetectedError(WorkspaceError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Cycle detected in dependency graph: {' -> '.join(cycle)}")


class PlanDriftError(WorkspaceError):
    """Raised when the declared publish order no longer matches the dependency graph."""

    def __init__(self, violations: List[str], missing: Sequence[str] = (), unknown: Sequence[str] = ()):
        self.violations = violations
        self.missing = list(missing)
        self.unknown = list(unknown)
        problems = list(violations)
        if self.missing:
            problems.append(f"not in declared order: {', '.join(self.missing)}")
        if self.unknown:
            problems.append(f"not publishable workspace packages: {', '.join(self.unknown)}")
        super().__init__("Declared publish order drifted from the dependency graph: " + "; ".join(problems))


class InvalidTransitionError(ShipyardError):
    """Raised on an illegal publish state machine transition."""

    def __init__(self, state: str, event: str):
        self.state = state
        self.event = event
        super().__init__(f"Invalid transition '{event}' from state {state}")


class StageFailure(ShipyardError):
    """Base for failures that abort a pipeline stage."""

    error_kind = "StageFailure"

    def __init__(self, message: str, stage: str, exit_code: Optional[int] = None):
        self.stage = stage
        self.exit_code = exit_code
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        return {}


class ExternalToolFailure(StageFailure):
    """Raised when an external command exits with a non-zero status."""

    error_kind = "ExternalToolFailure"

    def __init__(self, stage: str, exit_code: int, command: Optional[Sequence[str]] = None):
        self.command = list(command) if command else None
        message = f"Stage '{stage}' failed with exit status {exit_code}"
        if self.command:
            message += f": {' '.join(self.command)}"
        super().__init__(message, stage=stage, exit_code=exit_code)


class FeatureCombinationFailure(ExternalToolFailure):
    """Raised on the first feature combination that does not build."""

    error_kind = "FeatureCombinationFailure"

    def __init__(
        self,
        stage: str,
        exit_code: int,
        package: str,
        combination: Sequence[str],
        diagnostic: str = "",
        command: Optional[Sequence[str]] = None,
    ):
        self.package = package
        self.combination = list(combination)
        self.diagnostic = diagnostic
        super().__init__(stage, exit_code, command)
        features = ", ".join(self.combination) or "<none>"
        self.args = (f"Package '{package}' fails to build with features [{features}] (exit status {exit_code})",)

    @property
    def details(self) -> Dict[str, Any]:
        return {
            "package": self.package,
            "combination": self.combination,
            "diagnostic": self.diagnostic,
        }


class TestProgramBuildFailure(ExternalToolFailure):
    """Raised when a test program fails to compile."""

    __test__ = False
    error_kind = "TestProgramBuildFailure"

    def __init__(self, stage: str, exit_code: int, artifact: str, command: Optional[Sequence[str]] = None):
        self.artifact = artifact
        super().__init__(stage, exit_code, command)
        self.args = (f"Test program '{artifact}' failed to build (exit status {exit_code})",)

    @property
    def details(self) -> Dict[str, Any]:
        return {"artifact": self.artifact}


class UnsuppressedAdvisory(StageFailure):
    """Raised when the audit finds advisories that are not on the allow-list."""

    error_kind = "UnsuppressedAdvisory"

    def __init__(self, advisory_ids: Sequence[str], stage: str = "audit"):
        self.advisory_ids = sorted(advisory_ids)
        super().__init__(
            f"Unsuppressed advisories: {', '.join(self.advisory_ids)}",
            stage=stage,
            exit_code=1,
        )

    @property
    def advisory_id(self) -> str:
        return self.advisory_ids[0]

    @property
    def details(self) -> Dict[str, Any]:
        return {"advisory_ids": self.advisory_ids}


class PublishFailure(ShipyardError):
    """Raised when a single package fails to publish."""

    def __init__(self, package: str, cause: str, exit_code: Optional[int] = None):
        self.package = package
        self.cause = cause
        self.exit_code = exit_code
        super().__init__(f"Failed to publish '{package}': {cause}")
