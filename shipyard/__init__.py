"""
Shipyard - Build, check and publish orchestration for multi-package workspaces.

This package provides tools for:
- Running the ordered check pipeline (format -> lint -> features -> test)
- Verifying every combination of optional package features
- Building the auxiliary test programs used as test fixtures
- Auditing the dependency closure against a curated suppression list
- Publishing workspace packages to a registry in dependency order
"""

__version__ = "0.1.0"
