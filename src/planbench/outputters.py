"""
planbench/outputters.py — 基准结果输出

BenchmarkOutputter           : 输出器接口, 每个 Results 调用一次 dump_result
JSONBenchmarkOutputter       : 所有基准写入同一个 JSON 文档
TrajectoryBenchmarkOutputter : 每次运行的轨迹写入同一个 .npz 归档
OMPLBenchmarkOutputter       : 每个基准一个 OMPL 基准日志文件

文件型输出器在第一次 dump_result 时才打开目标, 多次调用之间保持打开,
close() (或退出 with 块 / 对象销毁) 时写入结尾并关闭.
"""

from __future__ import annotations

import abc
import io
import json
import logging
import zipfile
from collections import OrderedDict
from pathlib import Path
from typing import IO, Dict, List, Optional

import numpy as np

from . import __version__
from .benchmarking import Results
from .metrics import metric_to_string, metric_type_name
from .utils import format_date, get_hostname

logger = logging.getLogger(__name__)


class BenchmarkOutputter(abc.ABC):
    """输出器接口.

    ``dump_result`` 只读访问 Results, 失败时抛出 OSError 等异常.
    """

    @abc.abstractmethod
    def dump_result(self, results: Results) -> None:
        """写出一个基准 (通常对应一个规划器) 的结果."""

    def close(self) -> None:
        """结束输出并释放资源. 默认空操作."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


# ═══════════════════════════════════════════════════════════════════════════
# JSON
# ═══════════════════════════════════════════════════════════════════════════

def results_to_dict(results: Results) -> dict:
    """Results → JSON 兼容字典 (非有限浮点替换为最大有限值)."""
    return {
        "name": results.name,
        "scene": results.scene.name,
        "planner": results.planner.name,
        "request": results.request.to_dict(),
        "options": results.options.to_dict(),
        "start": format_date(results.start),
        "finish": format_date(results.finish) if results.finish else None,
        "n_runs": len(results.runs),
        "runs": [run.to_dict() for run in results.runs],
    }


class JSONBenchmarkOutputter(BenchmarkOutputter):
    """把所有基准写入一个 JSON 对象, 键为基准名.

    文件内容只有在 ``close()`` 之后才是完整的 JSON 文档.
    """

    def __init__(self, file: str | Path):
        self._stream: Optional[IO[str]] = None
        self.file = Path(file)
        self._n_written = 0

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def dump_result(self, results: Results) -> None:
        if self._stream is None:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(self.file, "w", encoding="utf-8")
            self._stream.write("{\n")

        body = json.dumps(results_to_dict(results), indent=2,
                          ensure_ascii=False, allow_nan=False)
        self._stream.write(",\n" if self._n_written else "")
        self._stream.write(f"{json.dumps(results.name, ensure_ascii=False)}: {body}")
        self._stream.flush()
        self._n_written += 1
        logger.info("Wrote '%s' (%d runs) → %s", results.name,
                    len(results.runs), self.file)

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.write("\n}\n")
        finally:
            self._stream.close()
            self._stream = None

    def __del__(self):
        self.close()


def load_json_results(path: str | Path) -> Dict[str, dict]:
    """读取 JSONBenchmarkOutputter 写出的文件."""
    with open(path, encoding="utf-8") as f:
        return json.load(f, object_pairs_hook=OrderedDict)


# ═══════════════════════════════════════════════════════════════════════════
# Trajectory archive
# ═══════════════════════════════════════════════════════════════════════════

class TrajectoryBenchmarkOutputter(BenchmarkOutputter):
    """每次运行的轨迹以 ``<基准名>/run_<k>.npy`` 写入一个 zip 归档.

    归档与 ``numpy.load`` 兼容 (.npz). 没有保留路径的运行写入 (0, 0) 空数组.
    同一基准名多次写入时 k 继续递增.
    """

    def __init__(self, file: str | Path):
        self._archive: Optional[zipfile.ZipFile] = None
        self.file = Path(file)
        self._counts: Dict[str, int] = {}

    @property
    def is_open(self) -> bool:
        return self._archive is not None

    def dump_result(self, results: Results) -> None:
        if self._archive is None:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            self._archive = zipfile.ZipFile(self.file, "w",
                                            compression=zipfile.ZIP_DEFLATED)

        k = self._counts.get(results.name, 0)
        for run in results.runs:
            path = run.path if run.path is not None else np.empty((0, 0))
            buf = io.BytesIO()
            np.save(buf, np.asarray(path, dtype=np.float64), allow_pickle=False)
            self._archive.writestr(f"{results.name}/run_{k}.npy", buf.getvalue())
            k += 1
        self._counts[results.name] = k
        logger.info("Archived %d trajectories of '%s' → %s",
                    len(results.runs), results.name, self.file)

    def close(self) -> None:
        if self._archive is None:
            return
        self._archive.close()
        self._archive = None

    def __del__(self):
        self.close()


def load_trajectory_archive(path: str | Path) -> Dict[str, List[np.ndarray]]:
    """读取轨迹归档, 按基准名分组 (保持写入顺序)."""
    grouped: Dict[str, List[np.ndarray]] = OrderedDict()
    with zipfile.ZipFile(path, "r") as archive:
        for member in archive.namelist():
            topic, _, _ = member.rpartition("/")
            with archive.open(member) as f:
                arr = np.load(io.BytesIO(f.read()), allow_pickle=False)
            grouped.setdefault(topic, []).append(arr)
    return grouped


# ═══════════════════════════════════════════════════════════════════════════
# OMPL benchmark log
# ═══════════════════════════════════════════════════════════════════════════

class OMPLBenchmarkOutputter(BenchmarkOutputter):
    """每个基准写一个 ``<prefix><name>.log``, 格式与
    OMPL 的 ``ompl_benchmark_statistics.py`` 兼容.
    """

    def __init__(self, prefix: str | Path):
        self.prefix = str(prefix)

    def log_path(self, results: Results) -> Path:
        return Path(f"{self.prefix}{results.name}.log")

    def dump_result(self, results: Results) -> None:
        out = self.log_path(results)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(format_ompl_log(results), encoding="utf-8")
        logger.info("Saved OMPL log → %s", out)


def format_ompl_log(results: Results) -> str:
    """生成 OMPL 基准日志文本.

    ``<<<|`` 与 ``|>>>`` 之间的配置块逐行写入场景名、请求与场景描述
    (后两者为单行 JSON).
    """
    request = results.request
    planner_name = request.planner_id or results.planner.name
    finish = results.finish or results.start
    spent = (finish - results.start).total_seconds()

    lines = [
        f"planbench version {__version__}",
        f"Experiment {results.name}",
        f"Running on {get_hostname()}",
        f"Starting at {format_date(results.start)}",
        "<<<|",
        f"scene {results.scene.name}",
        f"request {json.dumps(request.to_dict(), ensure_ascii=False)}",
        f"scene_description {json.dumps(results.scene.to_dict(), ensure_ascii=False)}",
        "|>>>",
        "0 is the random seed",
        f"{request.allowed_planning_time} seconds per run",
        "-1 MB per run",
        f"{results.options.runs} runs per planner",
        f"{spent} seconds spent to collect the data",
        "0 enum types",
        "1 planners",
        planner_name,
        "0 common properties",
    ]

    keys = list(results.runs[0].metrics) if results.runs else []
    first = results.runs[0].metrics if results.runs else {}
    lines.append(f"{len(keys) + 2} properties for each run")
    lines.append("time REAL")
    lines.append("success BOOLEAN")
    for key in keys:
        lines.append(f"{key} {metric_type_name(first[key])}")

    lines.append(f"{len(results.runs)} runs")
    for run in results.runs:
        values = [metric_to_string(float(run.time)), metric_to_string(run.success)]
        values += [metric_to_string(run.metrics[key]) for key in keys]
        lines.append("".join(f"{v}; " for v in values))
    lines.append(".")
    return "\n".join(lines) + "\n"
