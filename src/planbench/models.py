"""
planbench/models.py - 基准测试使用的数据模型

定义场景障碍物、规划请求与规划器响应：Obstacle、MotionRequest、
PlanningResponse。
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields as dc_fields
from typing import Any, Dict, Optional

import numpy as np


@dataclass
class Obstacle:
    """C-space 中的 AABB 障碍物

    Attributes:
        min_point: AABB 最小角点
        max_point: AABB 最大角点
        name: 障碍物名称（可选）
    """
    min_point: np.ndarray
    max_point: np.ndarray
    name: str = ""

    def __post_init__(self) -> None:
        self.min_point = np.asarray(self.min_point, dtype=np.float64)
        self.max_point = np.asarray(self.max_point, dtype=np.float64)
        if self.min_point.shape != self.max_point.shape:
            raise ValueError("min_point and max_point dimensions differ")
        if np.any(self.max_point < self.min_point):
            raise ValueError(f"obstacle '{self.name}' has max_point < min_point")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'name': self.name,
        }

    def contains_point(self, point: np.ndarray) -> bool:
        """检查点是否在障碍物 AABB 内"""
        return bool(np.all(point >= self.min_point) and np.all(point <= self.max_point))

    def distance_to_point(self, point: np.ndarray) -> float:
        """点到 AABB 的最小距离 (0 表示在内部)"""
        clamped = np.clip(point, self.min_point, self.max_point)
        return float(np.linalg.norm(point - clamped))


@dataclass
class MotionRequest:
    """一次运动规划问题：起点、目标及约束

    Attributes:
        start: 起始配置
        goal: 目标配置
        goal_tolerance: 终点距目标的最大允许 L2 距离
        allowed_planning_time: 单次规划的时间上限 (s)
        planner_id: 规划器配置名，报告中使用
    """
    start: np.ndarray
    goal: np.ndarray
    goal_tolerance: float = 1e-3
    allowed_planning_time: float = 5.0
    planner_id: str = ""

    def __post_init__(self) -> None:
        self.start = np.asarray(self.start, dtype=np.float64)
        self.goal = np.asarray(self.goal, dtype=np.float64)
        if self.start.shape != self.goal.shape:
            raise ValueError("start and goal dimensions differ")
        if self.goal_tolerance < 0:
            raise ValueError("goal_tolerance must be non-negative")
        if self.allowed_planning_time <= 0:
            raise ValueError("allowed_planning_time must be positive")

    @property
    def ndim(self) -> int:
        return int(self.start.shape[0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start': self.start.tolist(),
            'goal': self.goal.tolist(),
            'goal_tolerance': self.goal_tolerance,
            'allowed_planning_time': self.allowed_planning_time,
            'planner_id': self.planner_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MotionRequest':
        """从字典创建（忽略未知字段，缺失字段用默认值）"""
        valid_fields = {f.name for f in dc_fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


@dataclass
class PlanningResponse:
    """规划器单次调用的结果."""

    success: bool
    trajectory: Optional[np.ndarray]   # (N, DOF) waypoints, None if failed
    planning_time: float = 0.0
    collision_checks: int = 0
    nodes_explored: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_waypoints(self) -> int:
        if self.trajectory is None:
            return 0
        return len(self.trajectory)

    @staticmethod
    def failure(planning_time: float = 0.0,
                collision_checks: int = 0,
                nodes_explored: int = 0,
                **metadata) -> "PlanningResponse":
        """快捷构造失败结果."""
        return PlanningResponse(
            success=False, trajectory=None,
            planning_time=planning_time,
            collision_checks=collision_checks,
            nodes_explored=nodes_explored,
            metadata=metadata,
        )
