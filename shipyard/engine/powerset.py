"""
Feature Powerset Checker - builds every combination of optional features.

Features are often implemented independently but can silently depend on
each other being enabled together; only building every combination catches
that. For a package with k optional features there are 2^k builds.

Enumeration order is deterministic: packages sorted by name, features sorted
by name, combinations by size (empty first, full last) and lexicographically
within a size. The first failing combination is therefore reproducible.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Iterator, List, Optional, Sequence, Tuple

import structlog

from shipyard.exceptions import FeatureCombinationFailure
from shipyard.models.workspace import Package, Workspace
from shipyard.services.commands import CommandRunner, CommandTemplates

logger = structlog.get_logger()

Combination = Tuple[str, ...]


def feature_powerset(features: Sequence[str]) -> Iterator[Combination]:
    """
    Yield all 2^k combinations of ``features`` in canonical order.

    >>> list(feature_powerset(["y", "x"]))
    [(), ('x',), ('y',), ('x', 'y')]
    """
    ordered = sorted(set(features))
    for size in range(len(ordered) + 1):
        for combo in combinations(ordered, size):
            yield combo


@dataclass
class FeatureCheckReport:
    """What the checker attempted and where it stopped."""
    attempted: List[Tuple[str, Combination]] = field(default_factory=list)
    failed_package: Optional[str] = None
    failed_combination: Optional[Combination] = None
    exit_code: Optional[int] = None
    diagnostic: Optional[str] = None
    command: Optional[List[str]] = None

    @property
    def passed(self) -> bool:
        return self.failed_package is None


class FeaturePowersetChecker:
    """
    Verifies that each package builds under every feature combination.

    Builds use ``--no-default-features`` plus the combination, and only the
    library targets, so development-only dependencies never take part.
    """

    def __init__(self, runner: CommandRunner, templates: CommandTemplates, stage: str = "check-features"):
        self.runner = runner
        self.templates = templates
        self.stage = stage

    def enumerate(self, workspace: Workspace) -> Iterator[Tuple[Package, Combination]]:
        """All (package, combination) pairs in check order."""
        for package in sorted(workspace.packages, key=lambda p: p.name):
            for combo in feature_powerset(package.optional_features):
                yield package, combo

    def check(self, workspace: Workspace) -> FeatureCheckReport:
        """
        Build combinations in order, stopping at the first failure.

        Args:
            workspace: The workspace whose packages are checked

        Returns:
            FeatureCheckReport listing attempted combinations and the failure, if any
        """
        report = FeatureCheckReport()

        for package, combo in self.enumerate(workspace):
            argv = self.templates.render("feature_check", package=package.name, features=list(combo))
            report.attempted.append((package.name, combo))
            logger.info("features.check", package=package.name, features=list(combo))

            result = self.runner.run(argv, capture=True)
            if not result.ok:
                report.failed_package = package.name
                report.failed_combination = combo
                report.exit_code = result.returncode
                report.diagnostic = result.output
                report.command = result.argv
                logger.error(
                    "features.failed",
                    package=package.name,
                    features=list(combo),
                    exit_code=result.returncode,
                    attempted=len(report.attempted),
                )
                return report

        logger.info("features.passed", combinations=len(report.attempted))
        return report

    def run(self, workspace: Workspace) -> FeatureCheckReport:
        """
        Pipeline stage entry point.

        Raises:
            FeatureCombinationFailure: On the first combination that does not build
        """
        report = self.check(workspace)
        if not report.passed:
            raise FeatureCombinationFailure(
                stage=self.stage,
                exit_code=report.exit_code,
                package=report.failed_package,
                combination=report.failed_combination,
                diagnostic=report.diagnostic or "",
                command=report.command,
            )
        return report
