"""
Suppression Store - Loads the advisory suppression allow-list.

Entries are only ever removed by editing the file; nothing here writes to it.
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from shipyard.exceptions import ConfigurationError
from shipyard.models.audit import SuppressionList


class SuppressionStore:
    """
    File-based loader for advisory suppressions.

    File structure::

        suppressions:
          - id: RUSTSEC-2024-0344
            justification: >
              curve25519-dalek; remove once the repo upgrades to v4.
    """

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> SuppressionList:
        """
        Load the allow-list. A missing file means nothing is suppressed.

        Raises:
            ConfigurationError: If the file exists but is malformed
        """
        if not self.path.exists():
            return SuppressionList()

        with open(self.path, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"invalid YAML: {e}", source=str(self.path))

        try:
            return SuppressionList.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e), source=str(self.path))
