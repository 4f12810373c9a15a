"""
conftest.py — pytest fixtures shared across the test suite.

Provides small 2-D scenes, motion requests and scripted planners so that
individual test modules stay short and focused.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from planbench.models import MotionRequest, PlanningResponse
from planbench.planners import BasePlanner
from planbench.scene import Scene


# =========================================================================
# Scripted planners
# =========================================================================

class FixedPathPlanner(BasePlanner):
    """Always returns the same trajectory and counts its invocations."""

    def __init__(self, path, success=True, name="Fixed"):
        self.path = None if path is None else np.asarray(path, dtype=np.float64)
        self.success = success
        self._name = name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def plan(self, scene, request):
        self.calls += 1
        return PlanningResponse(success=self.success, trajectory=self.path)


class RaisingPlanner(BasePlanner):
    """Raises on every call."""

    @property
    def name(self) -> str:
        return "Raising"

    def plan(self, scene, request):
        raise RuntimeError("planner exploded")


# =========================================================================
# Scene / request fixtures
# =========================================================================

@pytest.fixture()
def empty_scene() -> Scene:
    return Scene([(-2.0, 2.0), (-2.0, 2.0)], name="empty")


@pytest.fixture()
def wall_scene() -> Scene:
    """Vertical wall at x in [-0.2, 0.2] with a gap above y = 1.0."""
    s = Scene([(-2.0, 2.0), (-2.0, 2.0)], name="wall")
    s.add_obstacle([-0.2, -2.0], [0.2, 1.0], name="wall")
    return s


@pytest.fixture()
def request_2d() -> MotionRequest:
    return MotionRequest(start=[-1.0, 0.0], goal=[1.0, 0.0],
                         goal_tolerance=1e-3, allowed_planning_time=2.0)


@pytest.fixture()
def four_waypoint_path():
    """Straight 4-waypoint path matching ``request_2d``."""
    return np.array([[-1.0, 0.0], [-1.0 / 3, 0.0], [1.0 / 3, 0.0], [1.0, 0.0]])


@pytest.fixture()
def fixed_planner(four_waypoint_path) -> FixedPathPlanner:
    return FixedPathPlanner(four_waypoint_path)
