"""
Configuration management for Shipyard.

Loads configuration from environment variables and .env file. The resulting
value is frozen: it is built once by the CLI entry point and handed to every
component explicitly.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings

from shipyard.models.workspace import ToolchainPin, ToolchainPins


class ShipyardConfig(BaseSettings):
    """Configuration settings for Shipyard."""

    # Workspace layout
    workspace_root: Path = Field(
        default_factory=Path.cwd,
        description="Root directory of the workspace"
    )
    workspace_file: Path = Field(Path("shipyard.yaml"), description="Workspace manifest")
    suppressions_file: Path = Field(
        Path("audit-suppressions.yaml"),
        description="Advisory suppression allow-list"
    )
    build_output_dir: Path = Field(Path("target"), description="Build output directory")
    test_program_output_dir: Path = Field(
        Path("target/deploy"),
        description="Where test programs are written"
    )

    # Version pins
    toolchain_version: str = Field("nightly-2024-11-22", min_length=1, description="Pinned nightly toolchain")
    platform_version: str = Field("2.2.0", min_length=1, description="Pinned platform release")

    # Audit
    audit_include_warnings: bool = Field(False, description="Count unmaintained/yanked warnings as advisories")

    # Publishing
    publish_token: Optional[SecretStr] = Field(
        None,
        validation_alias=AliasChoices("SHIPYARD_PUBLISH_TOKEN", "TOKEN"),
        description="Registry credential"
    )
    publish_delay: float = Field(5.0, ge=0.0, description="Seconds to wait between publishes")
    registry_index_url: Optional[str] = Field(
        None,
        description="Sparse index URL polled for propagation (e.g. https://index.crates.io/)"
    )
    index_poll_interval: float = Field(1.0, gt=0.0, description="Seconds between index polls")
    index_poll_timeout: float = Field(120.0, gt=0.0, description="Give up polling after this many seconds")

    # Logging
    log_level: str = Field("INFO", description="DEBUG | INFO | WARNING | ERROR")
    log_format: str = Field("console", description="console | json")

    model_config = {
        "env_prefix": "SHIPYARD_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "frozen": True,
        "populate_by_name": True,
    }

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against the workspace root."""
        if path.is_absolute():
            return path
        return self.workspace_root / path

    @property
    def manifest_path(self) -> Path:
        return self.resolve(self.workspace_file)

    @property
    def suppressions_path(self) -> Path:
        return self.resolve(self.suppressions_file)

    @property
    def build_output_path(self) -> Path:
        return self.resolve(self.build_output_dir)

    @property
    def test_program_output_path(self) -> Path:
        return self.resolve(self.test_program_output_dir)

    @property
    def pins(self) -> ToolchainPins:
        """Version pins shared read-only by every component."""
        return ToolchainPins(
            toolchain=ToolchainPin(name="toolchain", version=self.toolchain_version),
            platform=ToolchainPin(name="platform", version=self.platform_version),
        )


def load_config(**overrides: Any) -> ShipyardConfig:
    """
    Build the process-wide configuration.

    Args:
        overrides: Explicit values (e.g. from CLI options) taking precedence
            over the environment. ``None`` values are ignored.

    Returns:
        A frozen ShipyardConfig
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return ShipyardConfig(**values)
