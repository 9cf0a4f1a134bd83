"""
Orchestrator - Wires the checkers, builder, auditor and publisher together.

Each public method corresponds to one CLI verb. Check verbs return a
PipelineResult; publish returns the PublishRun.

    all-checks:  format-check -> lint -> check-features -> test
    prepublish:  install-platform -> clean -> build -> all-checks
    test:        build-test-programs, then the test suite (one stage)
"""

import shutil
import time
from typing import Callable, List, Optional, Sequence

import structlog

from shipyard.adapters.registry import CargoRegistry, SparseIndex
from shipyard.config import ShipyardConfig
from shipyard.engine.auditor import AdvisoryAuditor, AdvisoryScanner, CargoAuditScanner
from shipyard.engine.pipeline import Pipeline, PipelineRunner, Stage, command_stage
from shipyard.engine.planner import PublishPlanner
from shipyard.engine.powerset import FeaturePowersetChecker
from shipyard.engine.programs import TestProgramBuilder
from shipyard.engine.publisher import PublishOrchestrator
from shipyard.exceptions import StageFailure
from shipyard.models.audit import SuppressionList
from shipyard.models.publish import PublishRun
from shipyard.models.stage import PipelineResult
from shipyard.models.workspace import Package, Workspace
from shipyard.services.commands import CommandRunner, CommandTemplates
from shipyard.store.suppression_store import SuppressionStore
from shipyard.store.workspace_store import WorkspaceStore

logger = structlog.get_logger()


class Orchestrator:
    """
    Entry point for every Shipyard operation.

    Collaborators can be injected; anything not supplied is built from the
    configuration on first use.
    """

    def __init__(
        self,
        config: ShipyardConfig,
        workspace: Optional[Workspace] = None,
        suppressions: Optional[SuppressionList] = None,
        runner: Optional[CommandRunner] = None,
        scanner: Optional[AdvisoryScanner] = None,
        registry: Optional[CargoRegistry] = None,
        index: Optional[SparseIndex] = None,
        sleep: Callable[[float], None] = time.sleep,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.pins = config.pins
        self.runner = runner or CommandRunner(config.workspace_root)
        self.pipeline_runner = PipelineRunner()
        self.planner = PublishPlanner()
        self.sleep = sleep
        self.notify = notify
        self._workspace = workspace
        self._suppressions = suppressions
        self._templates: Optional[CommandTemplates] = None
        self._scanner = scanner
        self._registry = registry
        self._index = index

    @property
    def workspace(self) -> Workspace:
        """Get or load the workspace manifest."""
        if self._workspace is None:
            store = WorkspaceStore(self.config.manifest_path, self.config.workspace_root)
            self._workspace = store.load()
        return self._workspace

    @property
    def suppressions(self) -> SuppressionList:
        """Get or load the advisory allow-list."""
        if self._suppressions is None:
            self._suppressions = SuppressionStore(self.config.suppressions_path).load()
        return self._suppressions

    @property
    def templates(self) -> CommandTemplates:
        if self._templates is None:
            self._templates = CommandTemplates(self.pins, self.workspace.commands)
        return self._templates

    @property
    def scanner(self) -> AdvisoryScanner:
        if self._scanner is None:
            self._scanner = CargoAuditScanner(
                self.runner,
                self.templates,
                include_warnings=self.config.audit_include_warnings,
            )
        return self._scanner

    @property
    def registry(self) -> CargoRegistry:
        if self._registry is None:
            self._registry = CargoRegistry(self.runner, self.templates)
        return self._registry

    @property
    def index(self) -> Optional[SparseIndex]:
        if self._index is None and self.config.registry_index_url:
            self._index = SparseIndex(self.config.registry_index_url)
        return self._index

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _command(self, stage: str, template: str) -> Stage:
        return command_stage(stage, self.templates.render(template), self.runner)

    def format_check_stage(self) -> Stage:
        return self._command("format-check", "format_check")

    def format_stage(self) -> Stage:
        return self._command("format", "format")

    def lint_stage(self) -> Stage:
        return self._command("lint", "lint")

    def check_features_stage(self) -> Stage:
        checker = FeaturePowersetChecker(self.runner, self.templates)
        workspace = self.workspace

        def action() -> None:
            checker.run(workspace)

        return Stage(name="check-features", action=action)

    def build_test_programs_stage(self) -> Stage:
        builder = self._test_program_builder()
        workspace = self.workspace

        def action() -> None:
            builder.build(workspace)

        return Stage(name="build-test-programs", action=action)

    def test_stage(self) -> Stage:
        """Test programs first, then the full suite; both must pass."""
        builder = self._test_program_builder()
        workspace = self.workspace
        argv = self.templates.render("test")

        def action() -> None:
            builder.build(workspace)
            self.runner.check(argv, stage="test")

        return Stage(name="test", action=action, command=argv)

    def audit_stage(self) -> Stage:
        auditor = AdvisoryAuditor(self.scanner, self.suppressions)

        def action() -> None:
            auditor.run()

        return Stage(name="audit", action=action)

    def install_platform_stage(self) -> Stage:
        return self._command("install-platform", "install_platform")

    def clean_stage(self) -> Stage:
        output = self.config.build_output_path

        def action() -> None:
            if not output.exists():
                return
            logger.info("clean.remove", path=str(output))
            try:
                shutil.rmtree(output)
            except OSError as e:
                raise StageFailure(f"Cannot remove {output}: {e}", stage="clean", exit_code=1)

        return Stage(name="clean", action=action)

    def build_stage(self) -> Stage:
        return self._command("build", "build")

    def _test_program_builder(self) -> TestProgramBuilder:
        return TestProgramBuilder(self.runner, self.templates, self.config.test_program_output_path)

    def _run(self, name: str, stages: Sequence[Stage]) -> PipelineResult:
        return self.pipeline_runner.run(Pipeline(name, stages))

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def format_check(self) -> PipelineResult:
        return self._run("format-check", [self.format_check_stage()])

    def format(self) -> PipelineResult:
        return self._run("format", [self.format_stage()])

    def lint(self) -> PipelineResult:
        return self._run("lint", [self.lint_stage()])

    def check_features(self) -> PipelineResult:
        return self._run("check-features", [self.check_features_stage()])

    def build_test_programs(self) -> PipelineResult:
        return self._run("build-test-programs", [self.build_test_programs_stage()])

    def test(self) -> PipelineResult:
        return self._run("test", [self.test_stage()])

    def audit(self) -> PipelineResult:
        return self._run("audit", [self.audit_stage()])

    def all_checks_stages(self) -> List[Stage]:
        return [
            self.format_check_stage(),
            self.lint_stage(),
            self.check_features_stage(),
            self.test_stage(),
        ]

    def all_checks(self) -> PipelineResult:
        """Run format-check, lint, check-features and test, stopping at the first failure."""
        return self._run("all-checks", self.all_checks_stages())

    def prepublish(self) -> PipelineResult:
        """Install the pinned platform, rebuild from scratch, then run all checks."""
        stages = [
            self.install_platform_stage(),
            self.clean_stage(),
            self.build_stage(),
        ]
        stages.extend(self.all_checks_stages())
        return self._run("prepublish", stages)

    def publish_plan(self) -> List[Package]:
        """
        Resolve the validated publish order.

        Raises:
            WorkspaceError: If the dependency graph or the declared order is invalid
        """
        return self.planner.resolve(self.workspace)

    def publish(self, credential: Optional[str], extra_args: Sequence[str] = ()) -> PublishRun:
        """
        Publish the workspace in dependency order.

        Args:
            credential: Registry token
            extra_args: Pass-through arguments for each publish command

        Returns:
            The finished PublishRun

        Raises:
            ConfigurationError: If no credential was supplied
            WorkspaceError: If the plan cannot be resolved; nothing is published
        """
        plan = self.publish_plan()
        publisher = PublishOrchestrator(
            self.registry,
            delay=self.config.publish_delay,
            index=self.index,
            poll_interval=self.config.index_poll_interval,
            poll_timeout=self.config.index_poll_timeout,
            sleep=self.sleep,
            notify=self.notify or (lambda message: None),
        )
        return publisher.publish(plan, credential, extra_args)
