"""
planbench - 运动规划算法基准测试

对一组 (scene, planner, request) 反复运行规划器，收集每次运行的耗时、
成功与否以及路径质量指标，按基准名聚合后交给输出器写出。

输出格式：
1. JSON 汇总文档
2. 轨迹归档 (.npz)
3. OMPL 基准日志 (可用 ompl_benchmark_statistics.py 分析)
"""

__version__ = "0.1.0"

from .models import MotionRequest, Obstacle, PlanningResponse
from .scene import Scene
from .collision import CollisionChecker
from .planners import BasePlanner, RRTConnectPlanner, StraightLinePlanner, create_planner
from .metrics import (
    RunMetric,
    check_path_correct,
    compute_clearance,
    compute_path_length,
    compute_run_metrics,
    compute_smoothness,
    metric_to_string,
)
from .benchmarking import Benchmarker, Options, OutputFailure, Results, Run
from .outputters import (
    BenchmarkOutputter,
    JSONBenchmarkOutputter,
    OMPLBenchmarkOutputter,
    TrajectoryBenchmarkOutputter,
    load_json_results,
    load_trajectory_archive,
)
from .config import BenchmarkSuite, ConfigError, load_suite

__all__ = [
    # 数据模型
    'MotionRequest',
    'Obstacle',
    'PlanningResponse',
    'Scene',
    'CollisionChecker',
    # 规划器
    'BasePlanner',
    'StraightLinePlanner',
    'RRTConnectPlanner',
    'create_planner',
    # 指标
    'RunMetric',
    'check_path_correct',
    'compute_clearance',
    'compute_path_length',
    'compute_run_metrics',
    'compute_smoothness',
    'metric_to_string',
    # 基准
    'Benchmarker',
    'Options',
    'OutputFailure',
    'Results',
    'Run',
    # 输出
    'BenchmarkOutputter',
    'JSONBenchmarkOutputter',
    'OMPLBenchmarkOutputter',
    'TrajectoryBenchmarkOutputter',
    'load_json_results',
    'load_trajectory_archive',
    # 配置
    'BenchmarkSuite',
    'ConfigError',
    'load_suite',
]
