"""External system adapters for Shipyard."""

from shipyard.adapters.registry import CargoRegistry, SparseIndex

__all__ = [
    "CargoRegistry",
    "SparseIndex",
]
