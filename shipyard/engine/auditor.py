"""
Advisory Auditor - vulnerability scan filtered through a suppression list.

The scanner reports a set of advisory ids A for the complete dependency
closure. With the curated allow-list X the audit fails iff A \\ X is not
empty, and exactly A \\ X is reported.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Set

import structlog

from shipyard.exceptions import ExternalToolFailure, UnsuppressedAdvisory
from shipyard.models.audit import AuditResult, SuppressionList
from shipyard.services.commands import CommandRunner, CommandTemplates

logger = structlog.get_logger()


class AdvisoryScanner(ABC):
    """Produces the set of advisory ids affecting the dependency closure."""

    @abstractmethod
    def scan(self) -> Set[str]:
        """Return the ids of every advisory the scan reports."""


class CargoAuditScanner(AdvisoryScanner):
    """
    Runs ``cargo audit --json`` without any ignore flags and reads the report.

    The scanner exits non-zero when it finds vulnerabilities, so the exit
    status alone says nothing; a report that cannot be parsed is what counts
    as a tool failure.
    """

    def __init__(
        self,
        runner: CommandRunner,
        templates: CommandTemplates,
        include_warnings: bool = False,
        stage: str = "audit",
    ):
        self.runner = runner
        self.templates = templates
        self.include_warnings = include_warnings
        self.stage = stage

    def scan(self) -> Set[str]:
        argv = self.templates.render("audit")
        result = self.runner.run(argv, capture=True)
        try:
            report = json.loads(result.report or "")
        except json.JSONDecodeError:
            logger.error("audit.unreadable_report", exit_code=result.returncode)
            raise ExternalToolFailure(self.stage, result.returncode or 1, result.argv)
        if not isinstance(report, dict):
            raise ExternalToolFailure(self.stage, result.returncode or 1, result.argv)
        return self.parse_report(report)

    def parse_report(self, report: Dict[str, Any]) -> Set[str]:
        """Collect advisory ids from a cargo-audit JSON report."""
        found: Set[str] = set()
        vulnerabilities = report.get("vulnerabilities") or {}
        for entry in vulnerabilities.get("list") or []:
            advisory = entry.get("advisory") or {}
            if advisory.get("id"):
                found.add(advisory["id"])

        if self.include_warnings:
            for entries in (report.get("warnings") or {}).values():
                for entry in entries or []:
                    advisory = entry.get("advisory") or {}
                    if advisory.get("id"):
                        found.add(advisory["id"])
        return found


class AdvisoryAuditor:
    """Applies the suppression allow-list to a scan."""

    def __init__(self, scanner: AdvisoryScanner, suppressions: SuppressionList, stage: str = "audit"):
        self.scanner = scanner
        self.suppressions = suppressions
        self.stage = stage

    def evaluate(self, detected: Iterable[str]) -> AuditResult:
        """
        Split detected advisories into suppressed and unsuppressed.

        Args:
            detected: Advisory ids reported by the scanner

        Returns:
            AuditResult; ``unsuppressed`` is exactly detected minus suppressed
        """
        detected_set = set(detected)
        allowed = self.suppressions.ids
        return AuditResult(
            detected=sorted(detected_set),
            suppressed=sorted(detected_set & allowed),
            unsuppressed=sorted(detected_set - allowed),
            unmatched_suppressions=sorted(allowed - detected_set),
        )

    def audit(self) -> AuditResult:
        result = self.evaluate(self.scanner.scan())

        # Stale entries stay until someone deliberately edits the list
        for advisory_id in result.unmatched_suppressions:
            logger.warning("audit.suppression_unmatched", advisory=advisory_id)

        if result.passed:
            logger.info("audit.passed", detected=len(result.detected), suppressed=result.suppressed)
        else:
            logger.error("audit.unsuppressed", advisories=result.unsuppressed)
        return result

    def run(self) -> AuditResult:
        """
        Pipeline stage entry point.

        Raises:
            UnsuppressedAdvisory: Carrying exactly the unsuppressed advisories
        """
        result = self.audit()
        if not result.passed:
            raise UnsuppressedAdvisory(result.unsuppressed, stage=self.stage)
        return result
