"""
Tests for the Pipeline Runner.

Covers:
- Sequential abort: nothing after a failing stage executes
- Typed stage results (passed / failed / skipped)
- Predecessor links
- Non-stage errors propagate
"""

import pytest

from shipyard.engine.pipeline import Pipeline, PipelineRunner, Stage, command_stage
from shipyard.exceptions import ConfigurationError, ExternalToolFailure
from shipyard.models.stage import StageStatus

from tests.conftest import FakeRunner, fail_when


def recording_stage(name, executed, fail_code=None):
    def action():
        executed.append(name)
        if fail_code is not None:
            raise ExternalToolFailure(name, fail_code)
    return Stage(name=name, action=action)


class TestSequentialAbort:

    def test_all_stages_pass(self):
        executed = []
        pipeline = Pipeline("all-checks", [recording_stage(n, executed) for n in ["a", "b", "c"]])

        result = PipelineRunner().run(pipeline)

        assert result.passed
        assert result.exit_code == 0
        assert executed == ["a", "b", "c"]
        assert [s.status for s in result.stages] == [StageStatus.PASSED] * 3
        assert result.failed_stage is None

    @pytest.mark.parametrize("failing", [0, 1, 2, 3])
    def test_no_stage_after_failure_executes(self, failing):
        executed = []
        names = ["format-check", "lint", "check-features", "test"]
        stages = [
            recording_stage(n, executed, fail_code=3 if i == failing else None)
            for i, n in enumerate(names)
        ]

        result = PipelineRunner().run(Pipeline("all-checks", stages))

        assert executed == names[:failing + 1]
        assert not result.passed
        assert result.failed_stage.stage == names[failing]
        assert result.failed_stage.exit_code == 3
        assert result.exit_code == 3
        for later in result.stages[failing + 1:]:
            assert later.status == StageStatus.SKIPPED
            assert not later.executed

    def test_failure_payload_is_recorded(self):
        executed = []
        result = PipelineRunner().run(Pipeline("lint", [recording_stage("lint", executed, fail_code=101)]))

        failed = result.failed_stage
        assert failed.error == "ExternalToolFailure"
        assert "exit status 101" in failed.diagnostic
        assert failed.started_at is not None and failed.ended_at is not None

    def test_no_retry(self):
        executed = []
        PipelineRunner().run(Pipeline("lint", [recording_stage("lint", executed, fail_code=1)]))
        assert executed == ["lint"]


class TestPipeline:

    def test_predecessors_follow_declaration_order(self):
        pipeline = Pipeline("p", [recording_stage(n, []) for n in ["a", "b", "c"]])
        assert [s.predecessor for s in pipeline.stages] == [None, "a", "b"]

        result = PipelineRunner().run(pipeline)
        assert [s.predecessor for s in result.stages] == [None, "a", "b"]
        assert [s.seq for s in result.stages] == [1, 2, 3]

    def test_duplicate_stage_names_rejected(self):
        pipeline = Pipeline("p", [recording_stage("a", [])])
        with pytest.raises(ValueError):
            pipeline.add(recording_stage("a", []))

    def test_unexpected_errors_propagate(self):
        def broken():
            raise ConfigurationError("bad template")

        with pytest.raises(ConfigurationError):
            PipelineRunner().run(Pipeline("p", [Stage(name="a", action=broken)]))


class TestCommandStage:

    def test_raw_exit_status_is_reported(self):
        runner = FakeRunner(fail_when("clippy", code=101))
        stages = [
            command_stage("format-check", ["cargo", "fmt", "--check"], runner),
            command_stage("lint", ["cargo", "clippy"], runner),
            command_stage("test", ["cargo", "test"], runner),
        ]

        result = PipelineRunner().run(Pipeline("all-checks", stages))

        assert runner.calls == [["cargo", "fmt", "--check"], ["cargo", "clippy"]]
        assert result.failed_stage.stage == "lint"
        assert result.failed_stage.exit_code == 101
        assert result.executed == ["format-check", "lint"]

    def test_output_is_not_captured(self):
        runner = FakeRunner()
        stage = command_stage("lint", ["cargo", "clippy"], runner)
        stage.action()
        assert stage.command == ["cargo", "clippy"]
        assert runner.calls == [["cargo", "clippy"]]
