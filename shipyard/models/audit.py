"""
Advisory audit data models.
"""

import re
from typing import List, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ADVISORY_ID_RE = re.compile(r"^[A-Z][A-Z0-9]*-[A-Za-z0-9-]+$")


class SuppressionEntry(BaseModel):
    """A deliberately suppressed advisory. Entries never expire."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    advisory_id: str = Field(..., alias="id", description="Advisory identifier, e.g. RUSTSEC-2024-0344")
    justification: str = Field(..., min_length=1, description="Why this advisory is accepted")

    @field_validator("advisory_id")
    @classmethod
    def validate_advisory_id(cls, v: str) -> str:
        v = v.strip()
        if not ADVISORY_ID_RE.match(v):
            raise ValueError(f"Invalid advisory id: {v}")
        return v

    @field_validator("justification")
    @classmethod
    def validate_justification(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Suppression justification must not be blank")
        return v.strip()


class SuppressionList(BaseModel):
    """The curated allow-list of advisories."""
    model_config = ConfigDict(frozen=True)

    suppressions: List[SuppressionEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "SuppressionList":
        ids = [s.advisory_id for s in self.suppressions]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate suppression entries: {duplicates}")
        return self

    @property
    def ids(self) -> Set[str]:
        return {s.advisory_id for s in self.suppressions}


class AuditResult(BaseModel):
    """
    Outcome of an advisory audit.

    ``unsuppressed`` is exactly detected minus suppressed; the audit fails
    iff it is non-empty.
    """
    detected: List[str] = Field(default_factory=list, description="All advisories the scanner reported")
    suppressed: List[str] = Field(default_factory=list, description="Detected advisories on the allow-list")
    unsuppressed: List[str] = Field(default_factory=list, description="Detected advisories not on the allow-list")
    unmatched_suppressions: List[str] = Field(
        default_factory=list,
        description="Allow-list entries the scanner no longer reports"
    )

    @property
    def passed(self) -> bool:
        return not self.unsuppressed
