"""
planbench/config.py — 从 JSON 配置构建基准套件

配置结构:
{
    "options":  {"runs": 50, "metrics": ["waypoints", "correct", "length"]},
    "scenes":   {"empty": {"bounds": [[-2, 2], [-2, 2]], "obstacles": []}},
    "planners": {"rrt": {"type": "RRTConnect", "step_size": 0.3}},
    "requests": [
        {"name": "empty_rrt", "scene": "empty", "planner": "rrt",
         "request": {"start": [-1, -1], "goal": [1, 1]}}
    ],
    "outputs":  {"json": "out/results.json",
                 "trajectories": "out/paths.npz",
                 "ompl_prefix": "out/ompl_"}
}

相对输出路径以 ``output_root`` 为基准 (默认为配置文件所在目录).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .benchmarking import Benchmarker, Options, OutputFailure
from .models import MotionRequest
from .outputters import (BenchmarkOutputter, JSONBenchmarkOutputter,
                         OMPLBenchmarkOutputter, TrajectoryBenchmarkOutputter)
from .planners import create_planner
from .scene import Scene

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """基准配置无效."""


@dataclass
class BenchmarkSuite:
    """已注册请求的 Benchmarker + Options + 输出器."""
    benchmarker: Benchmarker
    options: Options
    outputters: List[BenchmarkOutputter] = field(default_factory=list)

    def run(self) -> List[OutputFailure]:
        """运行全部基准并关闭所有输出器.

        某个输出器 close() 失败不影响其余输出器的关闭, 失败记录
        (基准名为空) 追加到返回列表.
        """
        failures: List[OutputFailure] = []
        try:
            failures.extend(self.benchmarker.benchmark(self.outputters, self.options))
        finally:
            for outputter in self.outputters:
                name = type(outputter).__name__
                try:
                    outputter.close()
                except Exception as exc:
                    logger.exception("Closing %s failed", name)
                    failures.append(OutputFailure("", name, exc))
        return failures


def load_suite(source: str | Path | Dict[str, Any],
               output_root: Optional[str | Path] = None) -> BenchmarkSuite:
    """从 JSON 文件或字典创建 BenchmarkSuite."""
    if isinstance(source, dict):
        cfg = source
        base = Path(output_root) if output_root is not None else Path.cwd()
    else:
        path = Path(source)
        with open(path, encoding="utf-8") as f:
            cfg = json.load(f)
        base = Path(output_root) if output_root is not None else path.parent

    try:
        options = Options.from_dict(cfg.get("options", {}))
    except ValueError as exc:
        raise ConfigError(f"invalid options: {exc}") from exc

    scenes: Dict[str, Scene] = {}
    for name, scene_cfg in cfg.get("scenes", {}).items():
        scene_cfg = {"name": name, **scene_cfg}
        try:
            scenes[name] = Scene.from_dict(scene_cfg)
        except (KeyError, ValueError) as exc:
            raise ConfigError(f"invalid scene '{name}': {exc}") from exc

    planners = {}
    for name, planner_cfg in cfg.get("planners", {}).items():
        try:
            planners[name] = create_planner(planner_cfg)
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"invalid planner '{name}': {exc}") from exc

    benchmarker = Benchmarker()
    for entry in cfg.get("requests", []):
        name = entry.get("name")
        if not name:
            raise ConfigError(f"request without a name: {entry}")
        if entry.get("scene") not in scenes:
            raise ConfigError(f"request '{name}' references unknown scene {entry.get('scene')!r}")
        if entry.get("planner") not in planners:
            raise ConfigError(f"request '{name}' references unknown planner {entry.get('planner')!r}")
        try:
            request = MotionRequest.from_dict(entry.get("request", {}))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid request '{name}': {exc}") from exc
        benchmarker.add_benchmarking_request(
            name, scenes[entry["scene"]], planners[entry["planner"]], request)

    outputters = _create_outputters(cfg.get("outputs", {}), base)
    logger.info("Loaded suite: %d requests, %d outputters, %d runs each",
                len(benchmarker.requests), len(outputters), options.runs)
    return BenchmarkSuite(benchmarker, options, outputters)


def _create_outputters(cfg: Dict[str, Any], base: Path) -> List[BenchmarkOutputter]:
    unknown = set(cfg) - {"json", "trajectories", "ompl_prefix"}
    if unknown:
        raise ConfigError(f"unknown outputs: {sorted(unknown)}")

    outputters: List[BenchmarkOutputter] = []
    if cfg.get("json"):
        outputters.append(JSONBenchmarkOutputter(base / cfg["json"]))
    if cfg.get("trajectories"):
        outputters.append(TrajectoryBenchmarkOutputter(base / cfg["trajectories"]))
    if cfg.get("ompl_prefix"):
        outputters.append(OMPLBenchmarkOutputter(base / cfg["ompl_prefix"]))
    return outputters
