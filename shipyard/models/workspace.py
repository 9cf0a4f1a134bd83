"""
Workspace data models.

Packages, test programs and version pins are static: they are read from the
workspace manifest once and never mutated during a run.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


PACKAGE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class ToolchainPin(BaseModel):
    """A pinned external tool version."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Pin name, e.g. toolchain or platform")
    version: str = Field(..., min_length=1, description="Pinned version identifier")

    def __str__(self) -> str:
        return self.version


class ToolchainPins(BaseModel):
    """The complete set of version pins, read-only after startup."""
    model_config = ConfigDict(frozen=True)

    toolchain: ToolchainPin
    platform: ToolchainPin


class Package(BaseModel):
    """A package declared by the workspace."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Package name as known to the registry")
    version: str = Field("0.0.0", description="Version that would be published")
    path: Optional[Path] = Field(None, description="Package directory relative to the workspace root")
    dependencies: List[str] = Field(default_factory=list, description="Normal and build dependencies")
    dev_dependencies: List[str] = Field(default_factory=list, description="Development-only dependencies")
    features: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Feature name -> enabled dependencies/features"
    )
    publish: bool = Field(True, description="Whether the package is published to the registry")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not PACKAGE_NAME_RE.match(v):
            raise ValueError(f"Invalid package name: {v}")
        return v

    def _enables_dev_only(self, enables: List[str]) -> bool:
        """True if every item a feature enables points at a dev-dependency."""
        if not enables:
            return False
        dev = set(self.dev_dependencies)
        for item in enables:
            target = item[len("dep:"):] if item.startswith("dep:") else item.split("/", 1)[0]
            target = target.rstrip("?")
            if target not in dev:
                return False
        return True

    @property
    def optional_features(self) -> List[str]:
        """
        Features taking part in the powerset check, in canonical (sorted) order.

        The ``default`` feature is covered by its members and features that
        only switch on development dependencies are left out.
        """
        return sorted(
            name for name, enables in self.features.items()
            if name != "default" and not self._enables_dev_only(enables)
        )


class TestProgram(BaseModel):
    """An auxiliary program compiled as a test fixture."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Artifact identity")
    manifest: Path = Field(..., description="Manifest path relative to the workspace root")


class Workspace(BaseModel):
    """
    The static description of a workspace.

    ``publish_order`` is the hand-maintained publish list. It is optional;
    when present it is validated against the dependency graph before use.
    """
    model_config = ConfigDict(frozen=True)

    root: Path = Field(..., description="Workspace root directory")
    packages: List[Package] = Field(default_factory=list)
    test_programs: List[TestProgram] = Field(default_factory=list)
    publish_order: Optional[List[str]] = Field(None, description="Declared publish sequence")
    commands: Dict[str, str] = Field(default_factory=dict, description="Command template overrides")

    @model_validator(mode="after")
    def validate_unique_names(self) -> "Workspace":
        names = [p.name for p in self.packages]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate package names: {duplicates}")
        programs = [t.name for t in self.test_programs]
        duplicates = sorted({n for n in programs if programs.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate test program names: {duplicates}")
        return self

    def get(self, name: str) -> Optional[Package]:
        for package in self.packages:
            if package.name == name:
                return package
        return None

    @property
    def package_names(self) -> List[str]:
        return [p.name for p in self.packages]

    @property
    def publishable(self) -> List[Package]:
        return [p for p in self.packages if p.publish]
