"""
planbench/metrics.py - 单次运行的路径质量指标

提供：
- RunMetric 位掩码：选择需要计算的指标类别
- 路径长度 (L2)、平滑度 (角度变化)、安全裕度 (最小障碍物距离)
- 独立于规划器 success 标志的路径正确性检查
- compute_run_metrics：按位掩码生成一次运行的指标字典
- 指标值 (bool / int / float) 的文本与 JSON 转换，非有限浮点
  一律替换为最大有限值
"""

import enum
import functools
import logging
import math
import sys
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .collision import CollisionChecker
from .models import MotionRequest, PlanningResponse
from .scene import Scene

logger = logging.getLogger(__name__)

MetricValue = Union[bool, int, float]


class RunMetric(enum.IntFlag):
    """每次运行要计算的指标类别."""
    WAYPOINTS = 1 << 0
    PATH = 1 << 1
    CORRECT = 1 << 2
    LENGTH = 1 << 3
    CLEARANCE = 1 << 4
    SMOOTHNESS = 1 << 5
    ALL = WAYPOINTS | PATH | CORRECT | LENGTH | CLEARANCE | SMOOTHNESS

    @classmethod
    def from_names(cls, names: Sequence[str]) -> 'RunMetric':
        """``["waypoints", "correct"]`` -> ``WAYPOINTS | CORRECT``"""
        bits = cls(0)
        for name in names:
            try:
                bits |= cls[name.upper()]
            except KeyError:
                raise ValueError(f"Unknown run metric: {name!r}") from None
        return bits

    def names(self) -> List[str]:
        return [m.name.lower() for m in _SINGLE_METRICS if m in self]


_SINGLE_METRICS = (
    RunMetric.WAYPOINTS, RunMetric.PATH, RunMetric.CORRECT,
    RunMetric.LENGTH, RunMetric.CLEARANCE, RunMetric.SMOOTHNESS,
)


# ═══════════════════════════════════════════════════════════════════════════
# Evaluators
# ═══════════════════════════════════════════════════════════════════════════

def compute_path_length(path: Sequence[np.ndarray]) -> float:
    """计算 L2 路径总长度"""
    pts = np.asarray(path, dtype=np.float64)
    if len(pts) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(pts, axis=0), axis=1).sum())


def compute_smoothness(path: Sequence[np.ndarray]) -> Tuple[float, float]:
    """计算路径平滑度

    以相邻线段之间的角度变化衡量，越小越平滑。长度为零的线段不参与计算。

    Returns:
        (mean_angle_change, max_angle_change) in radians
    """
    pts = np.asarray(path, dtype=np.float64)
    if len(pts) < 3:
        return 0.0, 0.0

    segs = np.diff(pts, axis=0)
    norms = np.linalg.norm(segs, axis=1)
    keep = (norms[:-1] >= 1e-10) & (norms[1:] >= 1e-10)
    if not np.any(keep):
        return 0.0, 0.0
    dots = np.einsum('ij,ij->i', segs[:-1][keep], segs[1:][keep])
    cos = np.clip(dots / (norms[:-1][keep] * norms[1:][keep]), -1.0, 1.0)
    angles = np.arccos(cos)
    return float(angles.mean()), float(angles.max())


def compute_clearance(
    path: Sequence[np.ndarray],
    checker: CollisionChecker,
    n_samples_per_segment: int = 5,
) -> Tuple[float, float]:
    """计算路径的安全裕度（离障碍物的最小 / 平均距离）

    在每段上等间隔插值采样。场景无障碍物时返回 (inf, inf)。

    Returns:
        (min_clearance, avg_clearance)
    """
    if len(path) < 1:
        raise ValueError("cannot compute clearance of an empty path")
    path = np.asarray(path, dtype=np.float64)
    if checker.scene.n_obstacles == 0:
        return float('inf'), float('inf')

    clearances: List[float] = []
    for i in range(len(path) - 1):
        for t in np.linspace(0, 1, n_samples_per_segment, endpoint=False):
            q = path[i] + t * (path[i + 1] - path[i])
            clearances.append(checker.config_clearance(q))
    clearances.append(checker.config_clearance(path[-1]))

    return float(np.min(clearances)), float(np.mean(clearances))


def check_path_correct(
    path: Optional[np.ndarray],
    scene: Scene,
    request: MotionRequest,
    checker: Optional[CollisionChecker] = None,
) -> bool:
    """独立验证路径是否满足请求

    不依赖规划器自己报告的 success：起点须与请求起点一致，终点须在
    目标容差内，所有路径点在场景边界内，且每段线段无碰撞。
    """
    if path is None or len(path) == 0:
        return False
    if checker is None:
        checker = CollisionChecker(scene)
    path = np.asarray(path, dtype=np.float64)
    if path.ndim != 2 or path.shape[1] != request.ndim:
        return False

    tol = max(request.goal_tolerance, 1e-9)
    if np.linalg.norm(path[0] - request.start) > tol:
        return False
    if np.linalg.norm(path[-1] - request.goal) > tol:
        return False
    if not all(checker.check_config_in_limits(q) for q in path):
        return False
    if len(path) == 1:
        return not checker.check_config_collision(path[0])
    for i in range(len(path) - 1):
        if checker.check_segment_collision(path[i], path[i + 1]):
            return False
    return True


def _evaluate(name: str, fn: Callable[[], MetricValue],
              sentinel: MetricValue) -> MetricValue:
    try:
        return fn()
    except Exception:
        logger.warning("metric '%s' failed, recording %r", name, sentinel,
                       exc_info=True)
        return sentinel


def compute_run_metrics(
    response: PlanningResponse,
    scene: Scene,
    request: MotionRequest,
    bits: RunMetric = RunMetric.ALL,
    checker: Optional[CollisionChecker] = None,
) -> Dict[str, MetricValue]:
    """按位掩码计算一次运行的指标

    未选中的类别不计算也不出现在结果中。规划失败时需要轨迹的指标
    记为哨兵值：waypoints=0, correct=False, 浮点指标=nan。

    Args:
        response: 规划器响应
        scene: 规划场景 (安全裕度与正确性检查使用)
        request: 规划请求
        bits: RunMetric 位掩码
        checker: 碰撞检测器 (默认按场景新建)

    Returns:
        按插入顺序排列的 {指标名: 值}
    """
    metrics: Dict[str, MetricValue] = {}
    path = response.trajectory if response.success else None
    has_path = path is not None and len(path) > 0
    if checker is None:
        checker = CollisionChecker(scene)

    if RunMetric.WAYPOINTS in bits:
        metrics['waypoints'] = response.n_waypoints if has_path else 0

    if RunMetric.CORRECT in bits:
        metrics['correct'] = bool(_evaluate(
            'correct', lambda: check_path_correct(path, scene, request, checker), False))

    if RunMetric.LENGTH in bits:
        metrics['length'] = (
            _evaluate('length', lambda: compute_path_length(path), math.nan)
            if has_path else math.nan)

    if RunMetric.CLEARANCE in bits:
        metrics['clearance'] = (
            _evaluate('clearance', lambda: compute_clearance(path, checker)[0], math.nan)
            if has_path else math.nan)

    if RunMetric.SMOOTHNESS in bits:
        metrics['smoothness'] = (
            _evaluate('smoothness', lambda: compute_smoothness(path)[0], math.nan)
            if has_path else math.nan)

    return metrics


# ═══════════════════════════════════════════════════════════════════════════
# Value conversion
# ═══════════════════════════════════════════════════════════════════════════

def finite_or_max(value: float) -> float:
    """非有限值 (nan / ±inf) 替换为最大有限浮点数"""
    return value if math.isfinite(value) else sys.float_info.max


@functools.singledispatch
def metric_to_string(value) -> str:
    """指标值的规范文本形式"""
    raise TypeError(f"Unsupported metric type: {type(value).__name__}")


@metric_to_string.register(bool)
@metric_to_string.register(np.bool_)
def _(value) -> str:
    return str(int(value))


@metric_to_string.register(int)
@metric_to_string.register(np.integer)
def _(value) -> str:
    return str(int(value))


@metric_to_string.register(float)
@metric_to_string.register(np.floating)
def _(value) -> str:
    return repr(finite_or_max(float(value)))


@functools.singledispatch
def metric_type_name(value) -> str:
    """OMPL 基准日志中的属性类型名"""
    raise TypeError(f"Unsupported metric type: {type(value).__name__}")


@metric_type_name.register(bool)
@metric_type_name.register(np.bool_)
def _(value) -> str:
    return "BOOLEAN"


@metric_type_name.register(int)
@metric_type_name.register(np.integer)
def _(value) -> str:
    return "INTEGER"


@metric_type_name.register(float)
@metric_type_name.register(np.floating)
def _(value) -> str:
    return "REAL"


def metric_to_json(value: MetricValue) -> MetricValue:
    """转为可严格解析的 JSON 值 (保留 bool / int 类型)"""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    return finite_or_max(float(value))
