"""
planbench/planners.py — 统一规划器接口与参考规划器

BasePlanner ABC       ：所有规划器的统一接口
StraightLinePlanner   ：起终点直线插值，碰撞则失败
RRTConnectPlanner     ：双向 RRT + 随机 shortcut
create_planner        ：按配置字典创建规划器
"""

from __future__ import annotations

import abc
import logging
import time
from typing import List, Optional

import numpy as np

from .collision import CollisionChecker
from .models import MotionRequest, PlanningResponse
from .scene import Scene

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# BasePlanner ABC
# ═══════════════════════════════════════════════════════════════════════════

class BasePlanner(abc.ABC):
    """所有规划器的统一接口.

    同一实例会被 Benchmarker 在同一 (scene, request) 上反复调用;
    每次 ``plan()`` 必须是一次独立的试验.  实例内部状态在两次调用
    之间如何延续由规划器自己负责.
    """

    @abc.abstractmethod
    def plan(self, scene: Scene, request: MotionRequest) -> PlanningResponse:
        """执行一次规划.

        Args:
            scene: 规划场景
            request: 起点/目标/约束

        Returns:
            PlanningResponse
        """

    def reset(self) -> None:
        """重置内部状态. 默认空操作."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """该规划器的名称 (用于报告)."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ═══════════════════════════════════════════════════════════════════════════
# Common helpers
# ═══════════════════════════════════════════════════════════════════════════

def _steer(q_from: np.ndarray, q_to: np.ndarray,
           step_size: float) -> np.ndarray:
    diff = q_to - q_from
    dist = np.linalg.norm(diff)
    if dist <= step_size:
        return q_to.copy()
    return q_from + (step_size / dist) * diff


def _shortcut(path: List[np.ndarray], checker: CollisionChecker,
              max_iters: int, rng: np.random.Generator) -> List[np.ndarray]:
    if len(path) <= 2:
        return path
    result = list(path)
    for _ in range(max_iters):
        if len(result) <= 2:
            break
        i = rng.integers(0, len(result) - 2)
        j = rng.integers(i + 2, len(result))
        if not checker.check_segment_collision(result[i], result[j]):
            result = result[:i + 1] + result[j:]
    return result


class _NodePool:
    """用 numpy 数组存储 RRT 节点."""
    __slots__ = ('configs', 'parents', 'n', 'cap', 'ndim')

    def __init__(self, ndim: int, cap: int = 1024):
        self.ndim = ndim
        self.cap = cap
        self.configs = np.empty((cap, ndim), dtype=np.float64)
        self.parents = np.full(cap, -1, dtype=np.int32)
        self.n = 0

    def add(self, config: np.ndarray, parent: int) -> int:
        if self.n >= self.cap:
            self.cap *= 2
            new_c = np.empty((self.cap, self.ndim), dtype=np.float64)
            new_c[:self.n] = self.configs[:self.n]
            self.configs = new_c
            new_p = np.full(self.cap, -1, dtype=np.int32)
            new_p[:self.n] = self.parents[:self.n]
            self.parents = new_p
        idx = self.n
        self.configs[idx] = config
        self.parents[idx] = parent
        self.n += 1
        return idx

    def nearest(self, config: np.ndarray) -> int:
        diffs = self.configs[:self.n] - config
        return int(np.argmin(np.sum(diffs * diffs, axis=1)))

    def extract_path(self, idx: int) -> List[np.ndarray]:
        path = []
        while idx >= 0:
            path.append(self.configs[idx].copy())
            idx = int(self.parents[idx])
        path.reverse()
        return path


# ═══════════════════════════════════════════════════════════════════════════
# Planners
# ═══════════════════════════════════════════════════════════════════════════

class StraightLinePlanner(BasePlanner):
    """起点到目标的直线路径, 按 ``n_waypoints`` 等分插值."""

    def __init__(self, n_waypoints: int = 10, resolution: float = 0.05):
        if n_waypoints < 2:
            raise ValueError("n_waypoints must be >= 2")
        self.n_waypoints = n_waypoints
        self.resolution = resolution

    @property
    def name(self) -> str:
        return "StraightLine"

    def plan(self, scene: Scene, request: MotionRequest) -> PlanningResponse:
        t0 = time.perf_counter()
        checker = CollisionChecker(scene, resolution=self.resolution)
        if checker.check_segment_collision(request.start, request.goal):
            return PlanningResponse.failure(
                planning_time=time.perf_counter() - t0,
                collision_checks=checker.n_collision_checks,
                reason="collision")

        ts = np.linspace(0.0, 1.0, self.n_waypoints)[:, None]
        path = request.start + ts * (request.goal - request.start)
        return PlanningResponse(
            success=True, trajectory=path,
            planning_time=time.perf_counter() - t0,
            collision_checks=checker.n_collision_checks,
            nodes_explored=self.n_waypoints,
        )


class RRTConnectPlanner(BasePlanner):
    """双向 RRT (RRT-Connect), 找到解后做随机 shortcut.

    随机数生成器在实例内持续推进, 因此对同一请求的连续调用
    产生相互独立的试验; ``reset()`` 恢复初始种子.

    Args:
        step_size: 单步扩展长度
        resolution: 线段碰撞检测采样间隔
        shortcut_iters: shortcut 最大迭代次数 (0 关闭)
        seed: 随机种子
    """

    def __init__(self, step_size: float = 0.3, resolution: float = 0.05,
                 shortcut_iters: int = 100, seed: Optional[int] = 42):
        self.step_size = step_size
        self.resolution = resolution
        self.shortcut_iters = shortcut_iters
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    @property
    def name(self) -> str:
        return "RRTConnect"

    def reset(self) -> None:
        self._rng = np.random.default_rng(self.seed)

    def plan(self, scene: Scene, request: MotionRequest) -> PlanningResponse:
        checker = CollisionChecker(scene, resolution=self.resolution)
        q_start, q_goal = request.start, request.goal
        timeout = request.allowed_planning_time
        t0 = time.perf_counter()

        if checker.check_config_collision(q_start) or checker.check_config_collision(q_goal):
            return PlanningResponse.failure(
                planning_time=time.perf_counter() - t0,
                collision_checks=checker.n_collision_checks,
                reason="start or goal in collision")

        tree_a, tree_b = _NodePool(scene.ndim), _NodePool(scene.ndim)
        tree_a.add(q_start, -1)
        tree_b.add(q_goal, -1)
        swapped = False
        rng = self._rng

        def _extend(tree, q_target):
            idx_near = tree.nearest(q_target)
            q_near = tree.configs[idx_near]
            q_new = _steer(q_near, q_target, self.step_size)
            if checker.check_segment_collision(q_near, q_new):
                return None, None
            return tree.add(q_new, idx_near), q_new

        def _connect(tree, q_target):
            while True:
                idx, q_new = _extend(tree, q_target)
                if idx is None:
                    return None
                if np.linalg.norm(q_new - q_target) < 1e-6:
                    return idx

        while time.perf_counter() - t0 < timeout:
            q_rand = rng.uniform(scene.lows, scene.highs)
            idx_a, q_new_a = _extend(tree_a, q_rand)
            if idx_a is None:
                tree_a, tree_b = tree_b, tree_a
                swapped = not swapped
                continue
            idx_b = _connect(tree_b, q_new_a)
            if idx_b is not None:
                path_a = tree_a.extract_path(idx_a)
                path_b = tree_b.extract_path(idx_b)
                path_b.reverse()
                full = path_a + path_b[1:]
                if swapped:
                    full.reverse()
                full = _shortcut(full, checker, self.shortcut_iters, rng)
                return PlanningResponse(
                    success=True,
                    trajectory=np.array(full, dtype=np.float64),
                    planning_time=time.perf_counter() - t0,
                    collision_checks=checker.n_collision_checks,
                    nodes_explored=tree_a.n + tree_b.n,
                )
            tree_a, tree_b = tree_b, tree_a
            swapped = not swapped

        logger.debug("%s timed out after %.3fs", self.name, timeout)
        return PlanningResponse.failure(
            planning_time=time.perf_counter() - t0,
            collision_checks=checker.n_collision_checks,
            nodes_explored=tree_a.n + tree_b.n,
            reason="timeout")


PLANNERS = {
    "StraightLine": StraightLinePlanner,
    "RRTConnect": RRTConnectPlanner,
}


def create_planner(cfg: dict) -> BasePlanner:
    """从配置字典创建 BasePlanner 实例.

    ``cfg["type"]`` 选择规划器类, 其余键作为构造参数.
    """
    ptype = cfg["type"]
    if ptype not in PLANNERS:
        raise ValueError(f"Unknown planner type: {ptype}. "
                         f"Choose from {list(PLANNERS.keys())}")
    params = {k: v for k, v in cfg.items() if k != "type"}
    return PLANNERS[ptype](**params)

