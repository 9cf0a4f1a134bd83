"""
Test-Program Builder - compiles the auxiliary programs used as test fixtures.

The programs target a constrained execution environment distinct from the
host. Their output directory is a read-only input for the test stage; the
builder never inspects what is already there and always rebuilds.
"""

from pathlib import Path
from typing import List

import structlog

from shipyard.exceptions import TestProgramBuildFailure
from shipyard.models.workspace import Workspace
from shipyard.services.commands import CommandRunner, CommandTemplates

logger = structlog.get_logger()


class TestProgramBuilder:
    """Builds every declared test program; the first failure aborts the rest."""

    __test__ = False

    def __init__(
        self,
        runner: CommandRunner,
        templates: CommandTemplates,
        output_dir: Path,
        stage: str = "build-test-programs",
    ):
        self.runner = runner
        self.templates = templates
        self.output_dir = output_dir
        self.stage = stage

    def build(self, workspace: Workspace) -> List[str]:
        """
        Build all test programs in declaration order.

        Args:
            workspace: Workspace declaring the test programs

        Returns:
            Names of the programs built

        Raises:
            TestProgramBuildFailure: Naming the first program that failed
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        built: List[str] = []

        for program in workspace.test_programs:
            argv = self.templates.render(
                "build_test_program",
                name=program.name,
                manifest=program.manifest,
                out_dir=self.output_dir,
            )
            logger.info("test_programs.build", program=program.name)
            result = self.runner.run(argv)
            if not result.ok:
                logger.error("test_programs.failed", program=program.name, exit_code=result.returncode)
                raise TestProgramBuildFailure(self.stage, result.returncode, program.name, result.argv)
            built.append(program.name)

        logger.info("test_programs.built", count=len(built), output_dir=str(self.output_dir))
        return built
