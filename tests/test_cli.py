"""Tests for the command line interface."""

import click
import pytest
from click.testing import CliRunner

from shipyard.cli import cli
from shipyard.engine.orchestrator import Orchestrator
from shipyard.log import configure_logging

from tests.conftest import FakeRunner, fail_when


@pytest.fixture
def invoke(config, workspace):
    configure_logging("WARNING", force=True)

    def _invoke(args, runner=None, env=None):
        orchestrator = Orchestrator(
            config,
            workspace=workspace,
            runner=runner or FakeRunner(),
            sleep=lambda seconds: None,
            notify=click.echo,
        )
        obj = {"config": config, "orchestrator": orchestrator}
        return CliRunner().invoke(cli, args, obj=obj, env=env)
    return _invoke


def test_print_versions_from_environment(tmp_path):
    env = {"SHIPYARD_TOOLCHAIN_VERSION": "nightly-2025-01-01", "SHIPYARD_PLATFORM_VERSION": "2.3.1"}

    toolchain = CliRunner().invoke(cli, ["-C", str(tmp_path), "print-toolchain-version"], env=env)
    platform = CliRunner().invoke(cli, ["-C", str(tmp_path), "print-platform-version"], env=env)

    assert toolchain.exit_code == 0
    assert toolchain.output == "nightly-2025-01-01\n"
    assert platform.exit_code == 0
    assert platform.output == "2.3.1\n"


def test_all_checks_pass(invoke):
    result = invoke(["all-checks"])

    assert result.exit_code == 0
    assert "Running all checks..." in result.output
    assert "all-checks passed" in result.output


def test_all_checks_exit_with_failing_status(invoke):
    runner = FakeRunner(fail_when("clippy", code=101))

    result = invoke(["all-checks"], runner=runner)

    assert result.exit_code == 101
    assert "Stage 'lint' failed" in result.output
    assert "SKIP" in result.output


def test_audit_lists_unsuppressed(invoke, tmp_path):
    report = '{"vulnerabilities": {"list": [{"advisory": {"id": "RUSTSEC-2099-0001"}}]}}'
    runner = FakeRunner(lambda argv: (1, report))

    result = invoke(["audit"], runner=runner)

    assert result.exit_code == 1
    assert "RUSTSEC-2099-0001" in result.output


def test_publish_requires_token(invoke):
    result = invoke(["publish"], env={"TOKEN": None, "SHIPYARD_PUBLISH_TOKEN": None})

    assert result.exit_code == 2
    assert "token is required" in result.output


def test_publish_passes_extra_args(invoke):
    runner = FakeRunner()

    result = invoke(["publish", "--token", "tok", "--", "--dry-run"], runner=runner)

    assert result.exit_code == 0
    assert all(c[-1] == "--dry-run" for c in runner.calls)
    assert "All crates published successfully!" in result.output


def test_publish_failure_exits_non_zero(invoke):
    runner = FakeRunner(fail_when("keys", code=1))

    result = invoke(["publish", "--token", "tok"], runner=runner)

    assert result.exit_code == 1
    assert "Failed(1)" in result.output
    assert "pending" in result.output


def test_publish_plan(invoke):
    result = invoke(["publish-plan"])

    assert result.exit_code == 0
    lines = [line.split()[1] for line in result.output.strip().splitlines()]
    assert lines == ["core", "keys", "harness", "cli"]


def test_missing_manifest_is_a_usage_error(tmp_path):
    result = CliRunner().invoke(cli, ["-C", str(tmp_path), "lint"])

    assert result.exit_code == 2
    assert "workspace manifest not found" in result.output
