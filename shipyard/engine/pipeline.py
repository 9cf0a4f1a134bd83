"""
Pipeline Runner - Sequential execution of check stages.

Stages run strictly one after another on the calling thread. The first stage
that fails stops the run: later stages never execute and are reported as
skipped. Nothing is retried.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, List, Optional, Sequence

import structlog

from shipyard.exceptions import StageFailure
from shipyard.models.stage import PipelineResult, StageResult, StageStatus
from shipyard.services.commands import CommandRunner

logger = structlog.get_logger()


@dataclass
class Stage:
    """
    One checked step. Created per run and discarded afterwards.

    ``action`` returns normally on success and raises a StageFailure on
    failure.
    """
    name: str
    action: Callable[[], None]
    command: Optional[List[str]] = None
    predecessor: Optional[str] = None


def command_stage(name: str, argv: Sequence[str], runner: CommandRunner) -> Stage:
    """Stage wrapping a single external command; output passes straight through."""
    argv = list(argv)

    def action() -> None:
        runner.check(argv, stage=name)

    return Stage(name=name, action=action, command=argv)


class Pipeline:
    """An ordered chain of stages; each stage knows its predecessor."""

    def __init__(self, name: str, stages: Optional[Sequence[Stage]] = None):
        self.name = name
        self._stages: List[Stage] = []
        for stage in stages or []:
            self.add(stage)

    def add(self, stage: Stage) -> "Pipeline":
        names = {s.name for s in self._stages}
        if stage.name in names:
            raise ValueError(f"Duplicate stage name in pipeline '{self.name}': {stage.name}")
        stage.predecessor = self._stages[-1].name if self._stages else None
        self._stages.append(stage)
        return self

    @property
    def stages(self) -> List[Stage]:
        return list(self._stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)


class PipelineRunner:
    """
    Executes a Pipeline and returns typed results.

    Only StageFailure is turned into a failed StageResult; anything else
    (configuration errors, bugs) propagates to the caller.
    """

    def run(self, pipeline: Pipeline) -> PipelineResult:
        """
        Run every stage in order until one fails.

        Args:
            pipeline: The stages to execute

        Returns:
            PipelineResult with one StageResult per stage
        """
        result = PipelineResult(name=pipeline.name)
        failed: Optional[StageResult] = None

        logger.info("pipeline.start", pipeline=pipeline.name, stages=[s.name for s in pipeline])

        for seq, stage in enumerate(pipeline, start=1):
            if failed is not None:
                result.stages.append(StageResult(
                    stage=stage.name,
                    status=StageStatus.SKIPPED,
                    seq=seq,
                    predecessor=stage.predecessor,
                ))
                continue

            started_at = datetime.utcnow()
            logger.info("pipeline.stage_start", pipeline=pipeline.name, stage=stage.name, seq=seq)
            try:
                stage.action()
            except StageFailure as e:
                failed = StageResult(
                    stage=stage.name,
                    status=StageStatus.FAILED,
                    seq=seq,
                    predecessor=stage.predecessor,
                    exit_code=e.exit_code,
                    error=e.error_kind,
                    diagnostic=str(e),
                    details=e.details,
                    started_at=started_at,
                    ended_at=datetime.utcnow(),
                )
                result.stages.append(failed)
                logger.error(
                    "pipeline.stage_failed",
                    pipeline=pipeline.name,
                    stage=stage.name,
                    exit_code=e.exit_code,
                    error=e.error_kind,
                )
                continue

            stage_result = StageResult(
                stage=stage.name,
                status=StageStatus.PASSED,
                seq=seq,
                predecessor=stage.predecessor,
                started_at=started_at,
                ended_at=datetime.utcnow(),
            )
            result.stages.append(stage_result)
            logger.info(
                "pipeline.stage_passed",
                pipeline=pipeline.name,
                stage=stage.name,
                duration_ms=stage_result.duration_ms,
            )

        logger.info("pipeline.finished", **result.to_summary())
        return result
