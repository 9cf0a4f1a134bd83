"""
Shipyard CLI - Command line interface for Shipyard.

Commands:
- print-toolchain-version / print-platform-version: Print version pins
- format / format-check / lint: Formatter and linter
- check-features: Feature powerset check
- build-test-programs / test: Test fixtures and the test suite
- audit: Advisory audit against the suppression list
- all-checks / prepublish: The full check pipeline
- publish-plan / publish: Dependency-ordered publishing

Exit codes: 0 on success, the failing command's exit status (or 1) when a
check or publish fails, 2 on configuration or usage errors.
"""

import sys
from pathlib import Path
from typing import Callable, Optional

import click
from pydantic import ValidationError

from shipyard import __version__
from shipyard.config import ShipyardConfig, load_config
from shipyard.engine.orchestrator import Orchestrator
from shipyard.exceptions import ShipyardError
from shipyard.log import configure_logging
from shipyard.models.publish import PublishRun, PublishStatus
from shipyard.models.stage import PipelineResult, StageStatus


STATUS_MARKS = {
    StageStatus.PASSED: "✓ PASS",
    StageStatus.FAILED: "✗ FAIL",
    StageStatus.SKIPPED: "- SKIP",
}

PUBLISH_MARKS = {
    PublishStatus.PUBLISHED: "✓ published",
    PublishStatus.FAILED: "✗ failed",
    PublishStatus.PENDING: "- pending",
}


def print_pipeline_result(result: PipelineResult) -> None:
    """Print a pipeline result in a formatted way."""
    click.echo(f"\n=== {result.name} ===")
    for stage in result.stages:
        line = f"{STATUS_MARKS[stage.status]:<8} {stage.stage}"
        if stage.duration_ms is not None:
            line += f" ({stage.duration_ms} ms)"
        click.echo(line)

    failed = result.failed_stage
    if failed is None:
        click.echo(f"\n✓ {result.name} passed")
        return

    click.echo(f"\n✗ Stage '{failed.stage}' failed (exit status {failed.exit_code})", err=True)
    if failed.diagnostic:
        click.echo(f"  {failed.diagnostic}", err=True)
    if failed.details.get("combination") is not None:
        features = ", ".join(failed.details["combination"]) or "<none>"
        click.echo(f"  package: {failed.details['package']}  features: [{features}]", err=True)
    if failed.details.get("advisory_ids"):
        click.echo("  unsuppressed advisories:", err=True)
        for advisory_id in failed.details["advisory_ids"]:
            click.echo(f"    - {advisory_id}", err=True)


def print_publish_run(run: PublishRun) -> None:
    """Print the end state of a publish run."""
    click.echo(f"\n=== publish: {run.describe()} ===")
    for state in run.states:
        line = f"{PUBLISH_MARKS[state.status]:<12} {state.package} {state.version}"
        if state.cause:
            line += f"  ({state.cause})"
        click.echo(line)

    if run.by_status(PublishStatus.FAILED):
        published = run.by_status(PublishStatus.PUBLISHED)
        click.echo("\nPublishing stopped. Already published packages stay published:", err=True)
        click.echo(f"  {', '.join(published) or '<none>'}", err=True)
        click.echo("Reconcile manually before re-running; re-publishing an existing version fails at the registry.", err=True)


def run_verb(ctx: click.Context, verb: Callable[[Orchestrator], PipelineResult]) -> None:
    """Run a check verb and exit with its status."""
    orchestrator: Orchestrator = ctx.obj["orchestrator"]
    try:
        result = verb(orchestrator)
    except ShipyardError as e:
        click.echo(f"\n✗ Error: {e}", err=True)
        sys.exit(2)

    print_pipeline_result(result)
    sys.exit(result.exit_code)


@click.group()
@click.version_option(version=__version__)
@click.option('--workspace-root', '-C', type=click.Path(file_okay=False, path_type=Path), help='Workspace root directory')
@click.option('--manifest', '-m', type=click.Path(dir_okay=False, path_type=Path), help='Workspace manifest (default: shipyard.yaml)')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False), help='Log level')
@click.option('--log-format', type=click.Choice(['console', 'json']), help='Log output format')
@click.pass_context
def cli(ctx: click.Context, workspace_root: Optional[Path], manifest: Optional[Path], log_level: Optional[str], log_format: Optional[str]):
    """Shipyard - build, check and publish a multi-package workspace"""
    if ctx.obj is not None and "orchestrator" in ctx.obj:
        return

    try:
        config = load_config(
            workspace_root=workspace_root,
            workspace_file=manifest,
            log_level=log_level,
            log_format=log_format,
        )
    except ValidationError as e:
        click.echo(f"✗ Invalid configuration: {e}", err=True)
        sys.exit(2)

    configure_logging(config.log_level, config.log_format)
    ctx.obj = {"config": config, "orchestrator": Orchestrator(config, notify=click.echo)}


@cli.command('print-toolchain-version')
@click.pass_context
def print_toolchain_version(ctx: click.Context):
    """Print the pinned toolchain version"""
    config: ShipyardConfig = ctx.obj["config"]
    click.echo(config.pins.toolchain.version)


@cli.command('print-platform-version')
@click.pass_context
def print_platform_version(ctx: click.Context):
    """Print the pinned platform version"""
    config: ShipyardConfig = ctx.obj["config"]
    click.echo(config.pins.platform.version)


@cli.command()
@click.pass_context
def audit(ctx: click.Context):
    """Audit dependencies for advisories not on the suppression list"""
    run_verb(ctx, lambda o: o.audit())


@cli.command('build-test-programs')
@click.pass_context
def build_test_programs(ctx: click.Context):
    """Build the test programs used as test fixtures"""
    run_verb(ctx, lambda o: o.build_test_programs())


@cli.command('format')
@click.pass_context
def format_code(ctx: click.Context):
    """Format all packages"""
    run_verb(ctx, lambda o: o.format())


@cli.command('format-check')
@click.pass_context
def format_check(ctx: click.Context):
    """Check formatting without writing"""
    run_verb(ctx, lambda o: o.format_check())


@cli.command()
@click.pass_context
def lint(ctx: click.Context):
    """Run the linter with warnings treated as errors"""
    run_verb(ctx, lambda o: o.lint())


@cli.command('check-features')
@click.pass_context
def check_features(ctx: click.Context):
    """Check that every feature combination builds"""
    run_verb(ctx, lambda o: o.check_features())


@cli.command()
@click.pass_context
def test(ctx: click.Context):
    """Build test programs, then run the test suite"""
    run_verb(ctx, lambda o: o.test())


@cli.command('all-checks')
@click.pass_context
def all_checks(ctx: click.Context):
    """Run format-check, lint, check-features and test in sequence"""
    click.echo("Running all checks...")
    run_verb(ctx, lambda o: o.all_checks())


@cli.command()
@click.pass_context
def prepublish(ctx: click.Context):
    """Clean rebuild followed by all checks"""
    run_verb(ctx, lambda o: o.prepublish())


@cli.command('publish-plan')
@click.pass_context
def publish_plan(ctx: click.Context):
    """Show the validated publish order without publishing"""
    orchestrator: Orchestrator = ctx.obj["orchestrator"]
    try:
        plan = orchestrator.publish_plan()
    except ShipyardError as e:
        click.echo(f"\n✗ Error: {e}", err=True)
        sys.exit(2)

    for position, package in enumerate(plan, start=1):
        click.echo(f"{position:>3}. {package.name} {package.version}")


@cli.command(context_settings={"ignore_unknown_options": True})
@click.option('--token', '-t', envvar='TOKEN', help='Registry token (default: SHIPYARD_PUBLISH_TOKEN / TOKEN)')
@click.argument('extra_args', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def publish(ctx: click.Context, token: Optional[str], extra_args: tuple):
    """
    Publish all packages in dependency order

    EXTRA_ARGS are passed through to every publish command (e.g. -- --dry-run).
    """
    config: ShipyardConfig = ctx.obj["config"]
    orchestrator: Orchestrator = ctx.obj["orchestrator"]

    credential = token
    if not credential and config.publish_token is not None:
        credential = config.publish_token.get_secret_value()
    if not credential:
        click.echo("✗ Error: a registry token is required (--token, SHIPYARD_PUBLISH_TOKEN or TOKEN)", err=True)
        sys.exit(2)

    try:
        run = orchestrator.publish(credential, list(extra_args))
    except ShipyardError as e:
        click.echo(f"\n✗ Error: {e}", err=True)
        sys.exit(2)

    print_publish_run(run)
    sys.exit(0 if run.succeeded else 1)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
