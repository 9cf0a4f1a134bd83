"""Data models for Shipyard."""

from shipyard.models.workspace import (
    Package,
    TestProgram,
    ToolchainPin,
    ToolchainPins,
    Workspace,
)
from shipyard.models.stage import (
    PipelineResult,
    StageResult,
    StageStatus,
)
from shipyard.models.audit import (
    AuditResult,
    SuppressionEntry,
    SuppressionList,
)
from shipyard.models.publish import (
    PublishPhase,
    PublishRun,
    PublishState,
    PublishStatus,
)

__all__ = [
    # Workspace models
    "Package",
    "TestProgram",
    "ToolchainPin",
    "ToolchainPins",
    "Workspace",
    # Stage models
    "PipelineResult",
    "StageResult",
    "StageStatus",
    # Audit models
    "AuditResult",
    "SuppressionEntry",
    "SuppressionList",
    # Publish models
    "PublishPhase",
    "PublishRun",
    "PublishState",
    "PublishStatus",
]
