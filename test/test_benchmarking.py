"""
Tests for planbench.benchmarking: Options validation, Results bookkeeping,
request registry semantics and the Benchmarker run / dispatch loop.
"""

import math
import sys

import numpy as np
import pytest

from conftest import FixedPathPlanner, RaisingPlanner
from planbench.benchmarking import Benchmarker, Options, Results, Run
from planbench.metrics import RunMetric
from planbench.models import PlanningResponse
from planbench.outputters import BenchmarkOutputter


class RecordingOutputter(BenchmarkOutputter):
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.received = []

    def dump_result(self, results):
        self.received.append(results)
        if results.name in self.fail_on:
            raise OSError(f"disk full while writing {results.name}")


# ═══════════════════════════════════════════════════════════════════════════
# Options
# ═══════════════════════════════════════════════════════════════════════════

class TestOptions:
    def test_defaults(self):
        o = Options()
        assert o.runs == 100
        assert o.run_metric_bits == RunMetric.ALL

    @pytest.mark.parametrize("runs", [0, -5])
    def test_non_positive_runs_rejected(self, runs):
        with pytest.raises(ValueError):
            Options(runs=runs)

    @pytest.mark.parametrize("runs", [2.5, "10", True])
    def test_non_integer_runs_rejected(self, runs):
        with pytest.raises(ValueError):
            Options(runs=runs)

    def test_frozen(self):
        o = Options(runs=3)
        with pytest.raises(AttributeError):
            o.runs = 4

    def test_int_bits_are_coerced(self):
        o = Options(runs=1, run_metric_bits=~0)
        assert o.run_metric_bits == RunMetric.ALL
        assert isinstance(o.run_metric_bits, RunMetric)

    def test_dict_round_trip(self):
        o = Options(runs=7, run_metric_bits=RunMetric.WAYPOINTS | RunMetric.LENGTH)
        d = o.to_dict()
        assert d["metrics"] == ["waypoints", "length"]
        assert Options.from_dict(d) == o

    def test_from_dict_with_int_bits(self):
        o = Options.from_dict({"runs": 2, "run_metric_bits": 5})
        assert o.run_metric_bits == RunMetric.WAYPOINTS | RunMetric.CORRECT

    def test_from_dict_defaults(self):
        assert Options.from_dict({}) == Options()


# ═══════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════

class TestResults:
    def test_add_run_keeps_path_when_requested(self, empty_scene, fixed_planner,
                                               request_2d, four_waypoint_path):
        results = Results("r", empty_scene, fixed_planner, request_2d,
                          Options(runs=1))
        run = results.add_run(0, 0.5, PlanningResponse(True, four_waypoint_path))
        assert isinstance(run, Run)
        assert results.runs == [run]
        np.testing.assert_allclose(run.path, four_waypoint_path)

    def test_path_dropped_without_path_bit(self, empty_scene, fixed_planner,
                                           request_2d, four_waypoint_path):
        results = Results("r", empty_scene, fixed_planner, request_2d,
                          Options(runs=1, run_metric_bits=RunMetric.WAYPOINTS))
        run = results.add_run(0, 0.5, PlanningResponse(True, four_waypoint_path))
        assert run.path is None
        assert run.metrics == {"waypoints": 4}

    def test_path_is_a_copy(self, empty_scene, fixed_planner, request_2d,
                            four_waypoint_path):
        results = Results("r", empty_scene, fixed_planner, request_2d,
                          Options(runs=1))
        traj = four_waypoint_path.copy()
        run = results.add_run(0, 0.1, PlanningResponse(True, traj))
        traj[0, 0] = 99.0
        assert run.path[0, 0] == -1.0

    def test_timestamps(self, empty_scene, fixed_planner, request_2d):
        results = Results("r", empty_scene, fixed_planner, request_2d, Options(runs=1))
        assert results.finish is None
        results.mark_finished()
        assert results.finish >= results.start

    def test_run_to_dict(self):
        run = Run(num=1, time=0.0, success=False, metrics={"waypoints": 0})
        assert run.to_dict() == {"num": 1, "time": 0.0, "success": False,
                                 "metrics": {"waypoints": 0}}

    def test_run_to_dict_is_json_safe(self):
        run = Run(num=2, time=math.inf, success=np.bool_(True),
                  path=np.zeros((2, 2)),
                  metrics={"waypoints": np.int64(2), "length": math.nan})
        d = run.to_dict()
        assert d == {"num": 2, "time": sys.float_info.max, "success": True,
                     "metrics": {"waypoints": 2, "length": sys.float_info.max}}
        assert type(d["metrics"]["waypoints"]) is int
        assert "path" not in d


# ═══════════════════════════════════════════════════════════════════════════
# Benchmarker
# ═══════════════════════════════════════════════════════════════════════════

class TestBenchmarker:
    def test_reach_goal_scenario(self, empty_scene, fixed_planner, request_2d):
        bm = Benchmarker()
        bm.add_benchmarking_request("reach-goal", empty_scene, fixed_planner, request_2d)
        out = RecordingOutputter()

        failures = bm.benchmark(
            [out], Options(runs=3, run_metric_bits=RunMetric.WAYPOINTS | RunMetric.CORRECT))

        assert failures == []
        assert len(out.received) == 1
        results = out.received[0]
        assert results.name == "reach-goal"
        assert len(results.runs) == 3
        for run in results.runs:
            assert run.success is True
            assert run.metrics == {"waypoints": 4, "correct": True}
            assert run.time >= 0.0
        assert results.finish is not None
        assert results.finish >= results.start

    @pytest.mark.parametrize("n", [1, 5, 17])
    def test_run_count_and_order(self, empty_scene, fixed_planner, request_2d, n):
        bm = Benchmarker()
        bm.add_benchmarking_request("a", empty_scene, fixed_planner, request_2d)
        out = RecordingOutputter()
        bm.benchmark([out], Options(runs=n))
        assert [r.num for r in out.received[0].runs] == list(range(n))
        assert fixed_planner.calls == n

    def test_reregister_overwrites(self, empty_scene, request_2d, four_waypoint_path):
        first = FixedPathPlanner(four_waypoint_path, name="first")
        second = FixedPathPlanner(four_waypoint_path, name="second")
        bm = Benchmarker()
        bm.add_benchmarking_request("x", empty_scene, first, request_2d)
        bm.add_benchmarking_request("x", empty_scene, second, request_2d)
        out = RecordingOutputter()

        bm.benchmark([out], Options(runs=2))

        assert len(bm.requests) == 1
        assert first.calls == 0
        assert second.calls == 2
        assert out.received[0].planner is second

    def test_requests_run_in_registration_order(self, empty_scene, request_2d,
                                                four_waypoint_path):
        bm = Benchmarker()
        for name in ("zeta", "alpha", "mid"):
            bm.add_benchmarking_request(
                name, empty_scene, FixedPathPlanner(four_waypoint_path), request_2d)
        out = RecordingOutputter()
        bm.benchmark([out], Options(runs=1))
        assert [r.name for r in out.received] == ["zeta", "alpha", "mid"]

    def test_each_instance_has_its_own_registry(self, empty_scene, fixed_planner,
                                                request_2d):
        a, b = Benchmarker(), Benchmarker()
        a.add_benchmarking_request("only-a", empty_scene, fixed_planner, request_2d)
        assert "only-a" not in b.requests

    def test_failed_planner_runs_are_recorded(self, empty_scene, request_2d):
        bm = Benchmarker()
        bm.add_benchmarking_request("fail", empty_scene,
                                    FixedPathPlanner(None, success=False), request_2d)
        out = RecordingOutputter()
        bm.benchmark([out], Options(runs=2))

        runs = out.received[0].runs
        assert [r.success for r in runs] == [False, False]
        for run in runs:
            assert run.path is None
            assert run.metrics["waypoints"] == 0
            assert run.metrics["correct"] is False
            assert math.isnan(run.metrics["length"])

    def test_raising_planner_does_not_abort(self, empty_scene, request_2d,
                                            fixed_planner):
        bm = Benchmarker()
        bm.add_benchmarking_request("boom", empty_scene, RaisingPlanner(), request_2d)
        bm.add_benchmarking_request("ok", empty_scene, fixed_planner, request_2d)
        out = RecordingOutputter()

        failures = bm.benchmark([out], Options(runs=3))

        assert failures == []
        boom, ok = out.received
        assert len(boom.runs) == 3
        assert not any(r.success for r in boom.runs)
        assert all(r.success for r in ok.runs)

    def test_outputter_fan_out_and_isolation(self, empty_scene, request_2d,
                                             four_waypoint_path):
        bm = Benchmarker()
        bm.add_benchmarking_request("first", empty_scene,
                                    FixedPathPlanner(four_waypoint_path), request_2d)
        bm.add_benchmarking_request("second", empty_scene,
                                    FixedPathPlanner(four_waypoint_path), request_2d)
        good_a = RecordingOutputter()
        bad = RecordingOutputter(fail_on={"first"})
        good_b = RecordingOutputter()

        failures = bm.benchmark([good_a, bad, good_b], Options(runs=1))

        calls = sum(len(o.received) for o in (good_a, bad, good_b))
        assert calls == 6
        assert [r.name for r in good_a.received] == ["first", "second"]
        assert [r.name for r in good_b.received] == ["first", "second"]
        assert len(failures) == 1
        failure = failures[0]
        assert failure.benchmark == "first"
        assert failure.outputter == "RecordingOutputter"
        assert isinstance(failure.error, OSError)
        assert "first" in str(failure)

    def test_outputters_see_finished_results(self, empty_scene, fixed_planner,
                                             request_2d):
        seen = []

        class Checker(BenchmarkOutputter):
            def dump_result(self, results):
                seen.append((results.finish is not None, len(results.runs)))

        bm = Benchmarker()
        bm.add_benchmarking_request("a", empty_scene, fixed_planner, request_2d)
        bm.benchmark([Checker()], Options(runs=4))
        assert seen == [(True, 4)]

    def test_empty_registry(self, caplog):
        assert Benchmarker().benchmark([RecordingOutputter()], Options(runs=1)) == []
        assert "no registered requests" in caplog.text

    def test_default_options(self, empty_scene, fixed_planner, request_2d):
        bm = Benchmarker()
        bm.add_benchmarking_request("a", empty_scene, fixed_planner, request_2d)
        out = RecordingOutputter()
        bm.benchmark([out])
        assert len(out.received[0].runs) == 100
