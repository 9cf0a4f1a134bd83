"""
Publish Orchestrator - Ordered, non-resumable publishing of a plan.

Packages are published one at a time in plan order. After each success the
orchestrator blocks until the registry has propagated the new version (index
poll when an index is configured, fixed delay otherwise) so the next
package's dependency resolution sees it. The first failure ends the run:
published packages stay published and the remainder is left untouched.
Reconciling a partial publish is a manual operator action.
"""

import time
from typing import Callable, List, Optional, Sequence

import structlog

from shipyard.adapters.registry import CargoRegistry, SparseIndex
from shipyard.exceptions import ConfigurationError, PublishFailure
from shipyard.models.publish import PublishPhase, PublishRun
from shipyard.models.workspace import Package

logger = structlog.get_logger()


def _silent(message: str) -> None:
    return None


class PublishOrchestrator:
    """
    Drives the publish state machine over a plan.

    Idle -> Publishing(0) -> ... -> Succeeded, or Failed(i) on the first error.
    """

    def __init__(
        self,
        registry: CargoRegistry,
        delay: float = 5.0,
        index: Optional[SparseIndex] = None,
        poll_interval: float = 1.0,
        poll_timeout: float = 120.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        notify: Callable[[str], None] = _silent,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Client used to publish a single package
            delay: Fixed wait after each publish when no index is configured
            index: Optional sparse index polled for the just-published version
            poll_interval: Seconds between index polls
            poll_timeout: Stop polling after this many seconds and move on
            sleep: Blocking wait function
            clock: Monotonic clock used for the poll deadline
            notify: Receives operator-facing progress messages
        """
        self.registry = registry
        self.delay = delay
        self.index = index
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.sleep = sleep
        self.clock = clock
        self.notify = notify

    def publish(
        self,
        plan: List[Package],
        credential: Optional[str],
        extra_args: Sequence[str] = (),
    ) -> PublishRun:
        """
        Publish every package in the plan, stopping at the first failure.

        Args:
            plan: Dependency-ordered packages
            credential: Registry token (required)
            extra_args: Pass-through arguments for every publish command

        Returns:
            The finished PublishRun (Succeeded or Failed(i))

        Raises:
            ConfigurationError: If no credential was supplied
        """
        if not credential:
            raise ConfigurationError("a registry credential is required to publish")

        extra_args = list(extra_args)
        run = PublishRun.for_plan(plan)
        run.start()
        logger.info("publish.start", packages=[p.name for p in plan], extra_args=extra_args)

        while run.phase == PublishPhase.PUBLISHING:
            position = run.index
            package = plan[position]
            self.notify(f"Publishing {package.name}...")
            logger.info("publish.package_start", package=package.name, version=package.version, position=position)

            try:
                self.registry.publish(package, credential, extra_args)
            except PublishFailure as e:
                run.mark_failed(e.cause)
                logger.error("publish.failed", package=package.name, position=position, cause=e.cause)
                self.notify(f"Failed to publish {package.name}: {e.cause}")
                break
            except Exception as e:
                cause = f"{type(e).__name__}: {e}"
                run.mark_failed(cause)
                logger.exception("publish.error", package=package.name, position=position)
                self.notify(f"Failed to publish {package.name}: {cause}")
                break

            run.mark_published()
            logger.info("publish.published", package=package.name, version=package.version)
            self.notify(f"{package.name} published successfully!")

            if run.phase == PublishPhase.PUBLISHING:
                self.wait_for_propagation(package, dry_run="--dry-run" in extra_args)

        if run.succeeded:
            self.notify("All crates published successfully!")
        logger.info("publish.finished", state=run.describe())
        return run

    def wait_for_propagation(self, package: Package, dry_run: bool = False) -> None:
        """
        Block until ``package`` is visible in the index, or for the fixed delay.

        A dry run uploads nothing, so there is nothing to poll for.
        """
        if self.index is None or dry_run:
            logger.debug("publish.delay", seconds=self.delay)
            self.sleep(self.delay)
            return

        deadline = self.clock() + self.poll_timeout
        while not self.index.is_visible(package.name, package.version):
            if self.clock() >= deadline:
                logger.warning(
                    "publish.propagation_timeout",
                    package=package.name,
                    version=package.version,
                    timeout=self.poll_timeout,
                )
                return
            self.sleep(self.poll_interval)
        logger.info("publish.propagated", package=package.name, version=package.version)
