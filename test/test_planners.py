"""
Smoke tests for the reference planners, the scene model and collision checks.
"""

import numpy as np
import pytest

from planbench.collision import CollisionChecker
from planbench.metrics import check_path_correct
from planbench.models import MotionRequest, Obstacle, PlanningResponse
from planbench.planners import (BasePlanner, RRTConnectPlanner,
                                StraightLinePlanner, create_planner)
from planbench.scene import Scene


# ═══════════════════════════════════════════════════════════════════════════
# Models / Scene
# ═══════════════════════════════════════════════════════════════════════════

class TestModels:
    def test_obstacle_validation(self):
        with pytest.raises(ValueError):
            Obstacle([0.0, 0.0], [1.0])
        with pytest.raises(ValueError):
            Obstacle([1.0, 1.0], [0.0, 0.0])

    def test_obstacle_distance(self):
        obs = Obstacle([0.0, 0.0], [1.0, 1.0])
        assert obs.distance_to_point(np.array([0.5, 0.5])) == 0.0
        assert obs.distance_to_point(np.array([2.0, 0.5])) == pytest.approx(1.0)

    def test_request_validation(self):
        with pytest.raises(ValueError):
            MotionRequest(start=[0.0, 0.0], goal=[1.0])
        with pytest.raises(ValueError):
            MotionRequest(start=[0.0], goal=[1.0], allowed_planning_time=0.0)

    def test_request_dict_round_trip(self, request_2d):
        d = request_2d.to_dict()
        back = MotionRequest.from_dict({**d, "unknown": 1})
        np.testing.assert_allclose(back.start, request_2d.start)
        assert back.allowed_planning_time == request_2d.allowed_planning_time

    def test_failure_response(self):
        r = PlanningResponse.failure(planning_time=0.5, reason="timeout")
        assert r.success is False
        assert r.trajectory is None
        assert r.n_waypoints == 0
        assert r.metadata["reason"] == "timeout"


class TestScene:
    def test_add_and_remove(self, empty_scene):
        empty_scene.add_obstacle([0.0, 0.0], [0.5, 0.5], name="box")
        assert empty_scene.n_obstacles == 1
        assert empty_scene.get_obstacle("box") is not None
        assert empty_scene.remove_obstacle("box")
        assert not empty_scene.remove_obstacle("box")

    def test_dimension_mismatch(self, empty_scene):
        with pytest.raises(ValueError):
            empty_scene.add_obstacle([0.0, 0.0, 0.0], [1.0, 1.0, 1.0])

    def test_json_round_trip(self, tmp_path, wall_scene):
        path = tmp_path / "scene.json"
        wall_scene.to_json(str(path))
        back = Scene.from_json(str(path))
        assert back.name == "wall"
        assert back.bounds == wall_scene.bounds
        assert back.get_obstacle("wall") is not None

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            Scene([])
        with pytest.raises(ValueError):
            Scene([(1.0, 0.0)])


class TestCollisionChecker:
    def test_config_and_segment(self, wall_scene):
        checker = CollisionChecker(wall_scene)
        assert checker.check_config_collision(np.array([0.0, 0.0]))
        assert not checker.check_config_collision(np.array([0.0, 1.5]))
        assert checker.check_segment_collision(np.array([-1.0, 0.0]), np.array([1.0, 0.0]))
        assert not checker.check_segment_collision(np.array([-1.0, 1.5]), np.array([1.0, 1.5]))
        assert checker.n_collision_checks > 0
        checker.reset_counter()
        assert checker.n_collision_checks == 0

    def test_limits(self, empty_scene):
        checker = CollisionChecker(empty_scene)
        assert checker.check_config_in_limits(np.array([2.0, -2.0]))
        assert not checker.check_config_in_limits(np.array([2.1, 0.0]))

    def test_safety_margin(self, wall_scene):
        checker = CollisionChecker(wall_scene, safety_margin=0.1)
        assert checker.check_config_collision(np.array([0.25, 0.0]))


# ═══════════════════════════════════════════════════════════════════════════
# Planners
# ═══════════════════════════════════════════════════════════════════════════

class TestPlanners:
    def test_cannot_instantiate_abc(self):
        with pytest.raises(TypeError):
            BasePlanner()  # type: ignore

    def test_straight_line_success(self, empty_scene, request_2d):
        r = StraightLinePlanner(n_waypoints=5).plan(empty_scene, request_2d)
        assert r.success
        assert r.trajectory.shape == (5, 2)
        assert check_path_correct(r.trajectory, empty_scene, request_2d)

    def test_straight_line_blocked(self, wall_scene, request_2d):
        r = StraightLinePlanner().plan(wall_scene, request_2d)
        assert not r.success
        assert r.metadata["reason"] == "collision"

    def test_rrt_connect_around_wall(self, wall_scene, request_2d):
        planner = RRTConnectPlanner(step_size=0.3, seed=0)
        r = planner.plan(wall_scene, request_2d)
        assert r.success
        assert check_path_correct(r.trajectory, wall_scene, request_2d)
        assert r.nodes_explored > 0

    def test_rrt_connect_start_in_collision(self, wall_scene):
        request = MotionRequest(start=[0.0, 0.0], goal=[1.0, 0.0])
        r = RRTConnectPlanner(seed=0).plan(wall_scene, request)
        assert not r.success

    def test_rrt_connect_trials_differ_and_reset(self, wall_scene, request_2d):
        planner = RRTConnectPlanner(seed=1)
        first = planner.plan(wall_scene, request_2d).trajectory
        second = planner.plan(wall_scene, request_2d).trajectory
        planner.reset()
        again = planner.plan(wall_scene, request_2d).trajectory
        np.testing.assert_allclose(first, again)
        assert first.shape != second.shape or not np.allclose(first, second)

    def test_create_planner(self):
        p = create_planner({"type": "RRTConnect", "step_size": 0.2, "seed": 3})
        assert isinstance(p, RRTConnectPlanner)
        assert p.step_size == 0.2
        assert create_planner({"type": "StraightLine"}).name == "StraightLine"
        with pytest.raises(ValueError):
            create_planner({"type": "PRM"})
