"""
Workspace Store - Loads the workspace manifest.

The manifest is a YAML file kept in source control next to the packages it
describes. It is read once per invocation and never written.
"""

from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from shipyard.exceptions import ConfigurationError
from shipyard.models.workspace import Workspace


class WorkspaceStore:
    """
    File-based loader for the workspace manifest.

    Manifest structure::

        packages:
          - name: mollusk-svm-error
            version: 0.4.0
            dependencies: []
            features: {}
        test_programs:
          - name: primary
            manifest: test-programs/primary/Cargo.toml
        publish_order: [mollusk-svm-error, ...]
        commands:
          lint: "cargo +{{ toolchain }} clippy --all -- -D warnings"
    """

    def __init__(self, manifest_path: Path, root: Path):
        """
        Initialize the WorkspaceStore.

        Args:
            manifest_path: Path to the YAML manifest
            root: Workspace root the manifest's relative paths are based on
        """
        self.manifest_path = manifest_path
        self.root = root

    def _read(self) -> Dict[str, Any]:
        if not self.manifest_path.exists():
            raise ConfigurationError("workspace manifest not found", source=str(self.manifest_path))
        with open(self.manifest_path, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"invalid YAML: {e}", source=str(self.manifest_path))
        if not isinstance(data, dict):
            raise ConfigurationError("manifest must be a mapping", source=str(self.manifest_path))
        return data

    def load(self) -> Workspace:
        """
        Load and validate the workspace.

        Returns:
            The static Workspace description

        Raises:
            ConfigurationError: If the manifest is missing or invalid
        """
        data = self._read()
        data["root"] = self.root
        try:
            return Workspace.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e), source=str(self.manifest_path))
