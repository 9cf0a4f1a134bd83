"""
Publish run data models.

Publish state lives only for the duration of one run and is never persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from shipyard.exceptions import InvalidTransitionError
from shipyard.models.workspace import Package


class PublishStatus(str, Enum):
    """Status of one package within a publish run."""
    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


class PublishPhase(str, Enum):
    """Phase of the publish state machine."""
    IDLE = "idle"
    PUBLISHING = "publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_PHASES = {PublishPhase.SUCCEEDED, PublishPhase.FAILED}


class PublishState(BaseModel):
    """Per-package state within a publish run."""
    package: str = Field(..., description="Package name")
    version: str = Field(..., description="Package version")
    position: int = Field(..., ge=0, description="Index in the publish plan")
    status: PublishStatus = Field(PublishStatus.PENDING)
    cause: Optional[str] = Field(None, description="Failure cause if the publish failed")
    published_at: Optional[datetime] = Field(None)


class PublishRun(BaseModel):
    """
    One publish run over a plan.

    Transitions::

        Idle -> Publishing(0)
        Publishing(i) --ok, last--> Succeeded
        Publishing(i) --ok--> Publishing(i+1)
        Publishing(i) --error--> Failed(i)

    Succeeded and Failed(i) are terminal.
    """
    phase: PublishPhase = Field(PublishPhase.IDLE)
    index: Optional[int] = Field(None, description="Current (or failed) package index")
    states: List[PublishState] = Field(default_factory=list)

    @classmethod
    def for_plan(cls, plan: List[Package]) -> "PublishRun":
        return cls(states=[
            PublishState(package=p.name, version=p.version, position=i)
            for i, p in enumerate(plan)
        ])

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def succeeded(self) -> bool:
        return self.phase == PublishPhase.SUCCEEDED

    def start(self) -> None:
        """Idle -> Publishing(0), or Idle -> Succeeded for an empty plan."""
        if self.phase != PublishPhase.IDLE:
            raise InvalidTransitionError(self.describe(), "start")
        if not self.states:
            self.phase = PublishPhase.SUCCEEDED
            return
        self.phase = PublishPhase.PUBLISHING
        self.index = 0

    def mark_published(self) -> None:
        """Record success of the current package and move on."""
        if self.phase != PublishPhase.PUBLISHING:
            raise InvalidTransitionError(self.describe(), "published")
        state = self.states[self.index]
        state.status = PublishStatus.PUBLISHED
        state.published_at = datetime.utcnow()
        if self.index == len(self.states) - 1:
            self.phase = PublishPhase.SUCCEEDED
        else:
            self.index += 1

    def mark_failed(self, cause: str) -> None:
        """Publishing(i) -> Failed(i)."""
        if self.phase != PublishPhase.PUBLISHING:
            raise InvalidTransitionError(self.describe(), "failed")
        state = self.states[self.index]
        state.status = PublishStatus.FAILED
        state.cause = cause
        self.phase = PublishPhase.FAILED

    def describe(self) -> str:
        """State machine notation, e.g. ``Publishing(2)`` or ``Failed(1)``."""
        if self.phase == PublishPhase.PUBLISHING:
            return f"Publishing({self.index})"
        if self.phase == PublishPhase.FAILED:
            return f"Failed({self.index})"
        return self.phase.value.capitalize()

    def status_map(self) -> Dict[str, PublishStatus]:
        return {s.package: s.status for s in self.states}

    def by_status(self, status: PublishStatus) -> List[str]:
        return [s.package for s in self.states if s.status == status]
