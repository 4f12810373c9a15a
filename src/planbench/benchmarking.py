"""
planbench/benchmarking.py — 规划器基准测试

Options        : 每个基准的运行配置 (次数 + 指标位掩码)
Run            : 单次试验记录
Results        : 一个命名基准的全部运行记录 + 起止时间
Benchmarker    : 注册 (scene, planner, request) 并逐一运行, 结果交给输出器

用法:
    benchmarker = Benchmarker()
    benchmarker.add_benchmarking_request("reach", scene, planner, request)
    with JSONBenchmarkOutputter("results.json") as out:
        failures = benchmarker.benchmark([out], Options(runs=20))
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .collision import CollisionChecker
from .metrics import MetricValue, RunMetric, compute_run_metrics, metric_to_json
from .models import MotionRequest, PlanningResponse
from .planners import BasePlanner
from .scene import Scene
from .utils import get_date

if TYPE_CHECKING:
    from .outputters import BenchmarkOutputter

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Options:
    """基准运行配置

    Attributes:
        runs: 每个请求的试验次数 (正整数)
        run_metric_bits: 需要计算的指标类别
    """
    runs: int = 100
    run_metric_bits: RunMetric = RunMetric.ALL

    def __post_init__(self) -> None:
        if isinstance(self.runs, bool) or not isinstance(self.runs, (int, np.integer)):
            raise ValueError(f"runs must be an integer, got {self.runs!r}")
        if self.runs <= 0:
            raise ValueError(f"runs must be positive, got {self.runs}")
        bits = RunMetric(int(self.run_metric_bits) & int(RunMetric.ALL))
        object.__setattr__(self, 'runs', int(self.runs))
        object.__setattr__(self, 'run_metric_bits', bits)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'runs': self.runs,
            'run_metric_bits': int(self.run_metric_bits),
            'metrics': self.run_metric_bits.names(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Options':
        """从字典创建

        ``metrics`` 可为名称列表; 也可直接给 ``run_metric_bits`` 整数.
        """
        kwargs: Dict[str, Any] = {}
        if 'runs' in data:
            kwargs['runs'] = data['runs']
        if 'metrics' in data:
            kwargs['run_metric_bits'] = RunMetric.from_names(data['metrics'])
        elif 'run_metric_bits' in data:
            kwargs['run_metric_bits'] = RunMetric(int(data['run_metric_bits']) & int(RunMetric.ALL))
        return cls(**kwargs)


@dataclass
class Run:
    """单次试验记录."""
    num: int
    time: float
    success: bool
    path: Optional[np.ndarray] = None
    metrics: Dict[str, MetricValue] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """JSON 兼容字典, 非有限浮点替换为最大有限值. 不含路径."""
        return {
            "num": self.num,
            "time": metric_to_json(float(self.time)),
            "success": bool(self.success),
            "metrics": {k: metric_to_json(v) for k, v in self.metrics.items()},
        }


@dataclass(frozen=True)
class OutputFailure:
    """某个输出器处理某个基准时的失败."""
    benchmark: str
    outputter: str
    error: BaseException

    def __str__(self) -> str:
        if not self.benchmark:
            return f"{self.outputter} failed to close: {self.error}"
        return f"{self.outputter} failed on '{self.benchmark}': {self.error}"


class Results:
    """一个命名基准的结果

    身份 (name, scene, planner, request, options) 构造后不变;
    ``runs`` 仅在执行期间追加, ``finish`` 设置后交给输出器只读使用.
    """

    def __init__(self, name: str, scene: Scene, planner: BasePlanner,
                 request: MotionRequest, options: Options):
        self.name = name
        self.scene = scene
        self.planner = planner
        self.request = request
        self.options = options
        self.start: datetime = get_date()
        self.finish: Optional[datetime] = None
        self.runs: List[Run] = []
        self._checker = CollisionChecker(scene)

    @property
    def total_time(self) -> float:
        """所有运行的计时总和 (秒)"""
        return float(sum(r.time for r in self.runs))

    @property
    def n_success(self) -> int:
        return sum(1 for r in self.runs if r.success)

    def add_run(self, num: int, time: float, response: PlanningResponse) -> Run:
        """记录一次试验并按位掩码计算指标."""
        run = Run(num=num, time=time, success=bool(response.success))
        self.compute_metric(response, run)
        self.runs.append(run)
        return run

    def compute_metric(self, response: PlanningResponse, run: Run) -> None:
        bits = self.options.run_metric_bits
        run.metrics = compute_run_metrics(response, self.scene, self.request,
                                          bits, checker=self._checker)
        if RunMetric.PATH in bits and response.trajectory is not None:
            run.path = np.array(response.trajectory, dtype=np.float64)

    def mark_finished(self) -> None:
        self.finish = get_date()

    def __repr__(self) -> str:
        return (f"Results(name={self.name!r}, planner={self.planner.name!r}, "
                f"runs={len(self.runs)}/{self.options.runs})")


# ═══════════════════════════════════════════════════════════════════════════
# Benchmarker
# ═══════════════════════════════════════════════════════════════════════════

class Benchmarker:
    """按名称注册规划请求并顺序运行

    所有请求与所有运行严格串行执行: 同一 Benchmarker 不会并发调用
    规划器, 计时只包含 ``planner.plan()`` 本身.
    """

    def __init__(self) -> None:
        self._requests: Dict[str, Tuple[Scene, BasePlanner, MotionRequest]] = {}

    @property
    def requests(self) -> Dict[str, Tuple[Scene, BasePlanner, MotionRequest]]:
        return dict(self._requests)

    def add_benchmarking_request(self, name: str, scene: Scene,
                                 planner: BasePlanner,
                                 request: MotionRequest) -> None:
        """注册 (或覆盖) 名为 ``name`` 的基准请求."""
        if name in self._requests:
            logger.debug("overwriting benchmarking request '%s'", name)
        self._requests[name] = (scene, planner, request)

    def benchmark(self, outputters: Sequence['BenchmarkOutputter'],
                  options: Optional[Options] = None) -> List[OutputFailure]:
        """运行全部已注册请求, 每个请求完成后分发给所有输出器.

        Returns:
            输出器失败列表 (为空表示全部写出成功)
        """
        if options is None:
            options = Options()
        failures: List[OutputFailure] = []

        if not self._requests:
            logger.warning("benchmark() called with no registered requests")
            return failures

        for name, (scene, planner, request) in self._requests.items():
            results = self.run_request(name, scene, planner, request, options)
            failures.extend(self._dispatch(results, outputters))

        if failures:
            logger.error("%d output failure(s) during benchmarking", len(failures))
        return failures

    def run_request(self, name: str, scene: Scene, planner: BasePlanner,
                    request: MotionRequest, options: Options) -> Results:
        """执行一个请求的 ``options.runs`` 次试验."""
        results = Results(name, scene, planner, request, options)
        logger.info("Benchmarking '%s' with %s: %d runs",
                    name, planner.name, options.runs)

        for num in range(options.runs):
            t0 = time.perf_counter()
            try:
                response = planner.plan(scene, request)
            except Exception as exc:
                elapsed = time.perf_counter() - t0
                logger.exception("planner %s raised on '%s' run %d",
                                 planner.name, name, num)
                response = PlanningResponse.failure(planning_time=elapsed,
                                                    error=repr(exc))
            else:
                elapsed = time.perf_counter() - t0

            run = results.add_run(num, elapsed, response)
            logger.debug("'%s' run %d → %s (%.4fs)", name, num,
                         "OK" if run.success else "FAIL", elapsed)

        results.mark_finished()
        logger.info("Finished '%s': %d/%d successful, %.3fs total",
                    name, results.n_success, len(results.runs),
                    results.total_time)
        return results

    @staticmethod
    def _dispatch(results: Results,
                  outputters: Sequence['BenchmarkOutputter']) -> List[OutputFailure]:
        failures = []
        for outputter in outputters:
            try:
                outputter.dump_result(results)
            except Exception as exc:
                logger.exception("%s failed to write '%s'",
                                 type(outputter).__name__, results.name)
                failures.append(OutputFailure(results.name,
                                              type(outputter).__name__, exc))
        return failures
