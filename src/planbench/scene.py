"""
planbench/scene.py - 场景管理

管理 C-space 边界与 AABB 障碍物集合，提供增删查改和 JSON 持久化。
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .models import Obstacle

logger = logging.getLogger(__name__)


class Scene:
    """规划场景

    Example:
        >>> scene = Scene([(-2.0, 2.0), (-2.0, 2.0)], name="narrow")
        >>> scene.add_obstacle([-0.2, -2.0], [0.2, 1.5], name="wall")
    """

    def __init__(
        self,
        bounds: Sequence[Tuple[float, float]],
        name: str = "",
    ) -> None:
        if not bounds:
            raise ValueError("scene bounds must not be empty")
        for lo, hi in bounds:
            if hi < lo:
                raise ValueError(f"invalid bound ({lo}, {hi})")
        self.bounds: List[Tuple[float, float]] = [(float(lo), float(hi)) for lo, hi in bounds]
        self.name = name
        self._obstacles: List[Obstacle] = []

    @property
    def ndim(self) -> int:
        return len(self.bounds)

    @property
    def lows(self) -> np.ndarray:
        return np.array([lo for lo, _ in self.bounds], dtype=np.float64)

    @property
    def highs(self) -> np.ndarray:
        return np.array([hi for _, hi in self.bounds], dtype=np.float64)

    @property
    def n_obstacles(self) -> int:
        return len(self._obstacles)

    def add_obstacle(
        self,
        min_point: Any,
        max_point: Any,
        name: str = "",
    ) -> Obstacle:
        """添加一个 AABB 障碍物

        Args:
            min_point: AABB 最小角点，维度须与场景一致
            max_point: AABB 最大角点
            name: 障碍物名称

        Returns:
            创建的 Obstacle 实例
        """
        if not name:
            name = f"obstacle_{self.n_obstacles}"
        obs = Obstacle(min_point=min_point, max_point=max_point, name=name)
        if obs.min_point.shape[0] != self.ndim:
            raise ValueError(
                f"obstacle '{name}' has {obs.min_point.shape[0]} dims, "
                f"scene has {self.ndim}")
        self._obstacles.append(obs)
        logger.debug("added obstacle '%s': min=%s, max=%s", name,
                     obs.min_point.tolist(), obs.max_point.tolist())
        return obs

    def remove_obstacle(self, name: str) -> bool:
        """按名称移除障碍物

        Returns:
            是否找到并移除
        """
        for i, obs in enumerate(self._obstacles):
            if obs.name == name:
                self._obstacles.pop(i)
                return True
        return False

    def get_obstacles(self) -> List[Obstacle]:
        return list(self._obstacles)

    def get_obstacle(self, name: str) -> Optional[Obstacle]:
        for obs in self._obstacles:
            if obs.name == name:
                return obs
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'bounds': [list(b) for b in self.bounds],
            'obstacles': [obs.to_dict() for obs in self._obstacles],
        }

    def to_json(self, filepath: str) -> None:
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, filepath: str) -> 'Scene':
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scene':
        """从字典加载场景

        Args:
            data: {'name': ..., 'bounds': [[lo, hi], ...],
                   'obstacles': [{'min': [...], 'max': [...], 'name': ...}, ...]}
        """
        scene = cls(bounds=data['bounds'], name=data.get('name', ''))
        for item in data.get('obstacles', []):
            scene.add_obstacle(
                min_point=item['min'],
                max_point=item['max'],
                name=item.get('name', ''),
            )
        return scene

    def __repr__(self) -> str:
        return f"Scene(name={self.name!r}, ndim={self.ndim}, n_obstacles={self.n_obstacles})"
