"""Tests for the Feature Powerset Checker."""

import pytest

from shipyard.engine.powerset import FeaturePowersetChecker, feature_powerset
from shipyard.exceptions import FeatureCombinationFailure
from shipyard.models.workspace import Package, Workspace

from tests.conftest import FakeRunner


def single_package_workspace(tmp_path, features, dev_dependencies=()):
    return Workspace(
        root=tmp_path,
        packages=[Package(name="harness", features=features, dev_dependencies=list(dev_dependencies))],
    )


def features_of(argv):
    if "--features" not in argv:
        return ()
    return tuple(argv[argv.index("--features") + 1].split(","))


class TestFeaturePowerset:

    def test_three_features_give_eight_combinations(self):
        combos = list(feature_powerset(["x", "y", "z"]))

        assert len(combos) == 8
        assert len(set(combos)) == 8
        assert combos[0] == ()
        assert combos[-1] == ("x", "y", "z")

    def test_order_is_canonical(self):
        assert list(feature_powerset(["z", "x", "y"])) == [
            (),
            ("x",), ("y",), ("z",),
            ("x", "y"), ("x", "z"), ("y", "z"),
            ("x", "y", "z"),
        ]

    @pytest.mark.parametrize("k", [0, 1, 4, 6])
    def test_size_is_two_to_the_k(self, k):
        assert len(list(feature_powerset([f"f{i}" for i in range(k)]))) == 2 ** k


class TestChecker:

    def test_checks_every_combination(self, tmp_path, templates):
        runner = FakeRunner()
        workspace = single_package_workspace(tmp_path, {"x": [], "y": [], "z": []})

        report = FeaturePowersetChecker(runner, templates).check(workspace)

        assert report.passed
        assert len(report.attempted) == 8
        assert [features_of(c) for c in runner.calls] == list(feature_powerset(["x", "y", "z"]))
        assert all("--no-default-features" in c for c in runner.calls)
        assert all("--all-targets" not in c for c in runner.calls)

    def test_order_is_reproducible(self, tmp_path, templates):
        workspace = single_package_workspace(tmp_path, {"b": [], "a": [], "c": []})
        first, second = FakeRunner(), FakeRunner()

        FeaturePowersetChecker(first, templates).check(workspace)
        FeaturePowersetChecker(second, templates).check(workspace)

        assert first.calls == second.calls

    def test_stops_at_first_failing_combination(self, tmp_path, templates):
        def responder(argv):
            features = features_of(argv)
            if "x" in features and "z" in features:
                return 101, "error[E0425]: cannot find function `helper`"
            return 0, ""

        runner = FakeRunner(responder)
        workspace = single_package_workspace(tmp_path, {"x": [], "y": [], "z": []})

        report = FeaturePowersetChecker(runner, templates).check(workspace)

        assert not report.passed
        assert report.failed_package == "harness"
        assert report.failed_combination == ("x", "z")
        assert report.exit_code == 101
        assert "E0425" in report.diagnostic
        # (), x, y, z, xy, xz -> stopped, yz and xyz never attempted
        assert len(runner.calls) == 6

    def test_run_raises_with_combination_and_diagnostic(self, tmp_path, templates):
        runner = FakeRunner(lambda argv: (1, "boom") if features_of(argv) == ("y",) else (0, ""))
        workspace = single_package_workspace(tmp_path, {"x": [], "y": []})

        with pytest.raises(FeatureCombinationFailure) as exc_info:
            FeaturePowersetChecker(runner, templates).run(workspace)

        error = exc_info.value
        assert error.stage == "check-features"
        assert error.package == "harness"
        assert error.combination == ["y"]
        assert error.diagnostic == "boom"
        assert error.details["combination"] == ["y"]

    def test_dev_only_and_default_features_are_excluded(self, tmp_path, templates):
        runner = FakeRunner()
        workspace = single_package_workspace(
            tmp_path,
            {
                "default": ["x"],
                "x": [],
                "bench": ["dep:criterion"],
                "fuzz": ["dep:fuzz-fixture"],
            },
            dev_dependencies=["criterion"],
        )

        FeaturePowersetChecker(runner, templates).check(workspace)

        assert workspace.packages[0].optional_features == ["fuzz", "x"]
        assert len(runner.calls) == 4

    def test_packages_are_checked_in_name_order(self, workspace, templates):
        runner = FakeRunner()

        report = FeaturePowersetChecker(runner, templates).check(workspace)

        packages = [name for name, _ in report.attempted]
        assert packages == sorted(packages)
        # harness has 3 features, the other three packages none
        assert len(report.attempted) == 8 + 3
