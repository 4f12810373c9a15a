"""
run_benchmark.py — 运行 JSON 配置描述的基准套件

用法:
    python examples/run_benchmark.py examples/configs/demo.json
    python examples/run_benchmark.py examples/configs/demo.json --runs 5 -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from planbench import load_suite


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a motion-planning benchmark suite")
    parser.add_argument("config", help="suite JSON file")
    parser.add_argument("--runs", type=int, default=None,
                        help="override options.runs")
    parser.add_argument("--output-root", default=None,
                        help="base directory for relative output paths")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    suite = load_suite(args.config, output_root=args.output_root)
    if args.runs is not None:
        suite.options = replace(suite.options, runs=args.runs)

    failures = suite.run()
    for failure in failures:
        print(f"  [FAIL] {failure}")

    print("=" * 50)
    print(f"{len(suite.benchmarker.requests)} benchmarks, "
          f"{suite.options.runs} runs each, {len(failures)} output failure(s)")
    print("=" * 50)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
