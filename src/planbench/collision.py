"""
planbench/collision.py - 碰撞检测模块

点机器人在 C-space 中的碰撞检测：
- 单点检测：配置是否落在任一障碍物 AABB 内
- 边界检测：配置是否在场景边界内
- 线段检测：等间隔采样逐点检查
- 安全裕度：配置到最近障碍物的距离
"""

import logging
from typing import Optional

import numpy as np

from .scene import Scene

logger = logging.getLogger(__name__)


class CollisionChecker:
    """碰撞检测器

    Args:
        scene: 障碍物场景
        resolution: 线段采样间隔（C-space L2 距离）
        safety_margin: 对障碍物 AABB 向外扩展的距离

    Example:
        >>> checker = CollisionChecker(scene)
        >>> checker.check_config_collision(q)
        >>> checker.check_segment_collision(q0, q1)
    """

    def __init__(
        self,
        scene: Scene,
        resolution: float = 0.05,
        safety_margin: float = 0.0,
    ) -> None:
        if resolution <= 0:
            raise ValueError("resolution must be positive")
        self.scene = scene
        self.resolution = resolution
        self.safety_margin = safety_margin
        self._n_collision_checks = 0

    @property
    def n_collision_checks(self) -> int:
        return self._n_collision_checks

    def reset_counter(self) -> None:
        self._n_collision_checks = 0

    def check_config_collision(self, q: np.ndarray) -> bool:
        """单点碰撞检测

        Returns:
            True = 与某个障碍物碰撞
        """
        self._n_collision_checks += 1
        q = np.asarray(q, dtype=np.float64)
        m = self.safety_margin
        for obs in self.scene.get_obstacles():
            if np.all(q >= obs.min_point - m) and np.all(q <= obs.max_point + m):
                return True
        return False

    def check_config_in_limits(self, q: np.ndarray, tol: float = 1e-9) -> bool:
        q = np.asarray(q, dtype=np.float64)
        return bool(np.all(q >= self.scene.lows - tol) and np.all(q <= self.scene.highs + tol))

    def check_segment_collision(
        self,
        q_start: np.ndarray,
        q_end: np.ndarray,
        resolution: Optional[float] = None,
    ) -> bool:
        """线段碰撞检测

        在两个配置之间等间隔采样，逐点做碰撞检测。

        Returns:
            True = 存在碰撞点, False = 所有采样点无碰撞
        """
        if resolution is None:
            resolution = self.resolution
        q_start = np.asarray(q_start, dtype=np.float64)
        q_end = np.asarray(q_end, dtype=np.float64)

        dist = float(np.linalg.norm(q_end - q_start))
        if dist < 1e-10:
            return self.check_config_collision(q_start)

        n_steps = max(2, int(np.ceil(dist / resolution)) + 1)
        for i in range(n_steps):
            t = i / (n_steps - 1)
            if self.check_config_collision(q_start + t * (q_end - q_start)):
                return True
        return False

    def config_clearance(self, q: np.ndarray) -> float:
        """配置到所有障碍物的最小距离 (无障碍物时为 inf)"""
        q = np.asarray(q, dtype=np.float64)
        min_dist = float('inf')
        for obs in self.scene.get_obstacles():
            min_dist = min(min_dist, obs.distance_to_point(q))
        return min_dist
