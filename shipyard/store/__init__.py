"""Storage components for Shipyard."""

from shipyard.store.workspace_store import WorkspaceStore
from shipyard.store.suppression_store import SuppressionStore

__all__ = [
    "WorkspaceStore",
    "SuppressionStore",
]
