"""
Pipeline stage result models.

A StageResult is a tagged variant: ``status`` says which case applies and the
remaining fields carry the stage identity and the diagnostic payload.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    """Outcome of a single stage."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageResult(BaseModel):
    """Result of running (or not running) one pipeline stage."""
    stage: str = Field(..., description="Stage name")
    status: StageStatus = Field(..., description="Stage outcome")
    seq: int = Field(..., ge=1, description="Position in the pipeline")
    predecessor: Optional[str] = Field(None, description="Name of the previous stage")
    exit_code: Optional[int] = Field(None, description="Raw exit status of the failing command")
    error: Optional[str] = Field(None, description="Failure kind, e.g. ExternalToolFailure")
    diagnostic: Optional[str] = Field(None, description="Human readable failure detail")
    details: Dict[str, Any] = Field(default_factory=dict, description="Failure payload")
    started_at: Optional[datetime] = Field(None, description="Start time")
    ended_at: Optional[datetime] = Field(None, description="End time")

    @property
    def passed(self) -> bool:
        return self.status == StageStatus.PASSED

    @property
    def executed(self) -> bool:
        return self.status != StageStatus.SKIPPED

    @property
    def duration_ms(self) -> Optional[int]:
        """Duration of the stage in milliseconds."""
        if self.started_at is None or self.ended_at is None:
            return None
        delta = self.ended_at - self.started_at
        return int(delta.total_seconds() * 1000)


class PipelineResult(BaseModel):
    """
    Complete result of a pipeline run.

    Holds one StageResult per declared stage. Stages after the failing one are
    present with status ``skipped`` so callers can see exactly what never ran.
    """
    name: str = Field(..., description="Pipeline name")
    stages: List[StageResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(s.status == StageStatus.PASSED for s in self.stages)

    @property
    def failed_stage(self) -> Optional[StageResult]:
        for stage in self.stages:
            if stage.status == StageStatus.FAILED:
                return stage
        return None

    @property
    def exit_code(self) -> int:
        """Exit status of the failing stage, 0 when everything passed."""
        failed = self.failed_stage
        if failed is None:
            return 0
        return failed.exit_code if failed.exit_code else 1

    @property
    def executed(self) -> List[str]:
        return [s.stage for s in self.stages if s.executed]

    def to_summary(self) -> Dict[str, Any]:
        failed = self.failed_stage
        return {
            "pipeline": self.name,
            "passed": self.passed,
            "executed": self.executed,
            "failed_stage": failed.stage if failed else None,
            "exit_code": self.exit_code,
        }
