from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..scenarios import Scenario
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "agents",
    "owned_markers",
    "unowned_markers",
    "candidate_checks",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "agents",
    "owned_markers",
    "unowned_markers",
    "candidate_checks",
    "avg_speed",
    "tick_ms",
    "stalled_agents",
    "patrol_swaps",
    "owned_ratio",
    "owned_per_agent",
    "min_owned",
    "max_owned",
    "candidate_checks_per_agent",
    "tick_ms_per_agent",
    "max_speed",
    "avg_goal_distance",
    "max_goal_distance",
    "occupied_cells",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.agents,
        metrics.owned_markers,
        metrics.unowned_markers,
        metrics.candidate_checks,
        f"{metrics.average_speed:.6f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    agents = world.agents
    count = metrics.agents
    marker_total = metrics.owned_markers + metrics.unowned_markers
    owned_ratio = 0.0 if marker_total <= 0 else metrics.owned_markers / marker_total
    if count <= 0:
        owned_per_agent = 0.0
        min_owned = 0
        max_owned = 0
        checks_per_agent = 0.0
        tick_ms_per_agent = 0.0
        max_speed = 0.0
        avg_goal_distance = 0.0
        max_goal_distance = 0.0
        occupied_cells = 0
    else:
        owned_counts = [len(agent.owned_markers) for agent in agents]
        owned_per_agent = metrics.owned_markers / count
        min_owned = min(owned_counts)
        max_owned = max(owned_counts)
        checks_per_agent = metrics.candidate_checks / count
        tick_ms_per_agent = tick_ms / count
        max_speed = max(agent.velocity.length() for agent in agents)
        goal_distances = [math.sqrt(agent.distance_to_goal_sq()) for agent in agents]
        avg_goal_distance = sum(goal_distances) / count
        max_goal_distance = max(goal_distances)
        occupied_cells = len({world.grid.cell_key(agent.position) for agent in agents})

    return [
        metrics.tick,
        count,
        metrics.owned_markers,
        metrics.unowned_markers,
        metrics.candidate_checks,
        f"{metrics.average_speed:.6f}",
        f"{tick_ms:.3f}",
        metrics.stalled_agents,
        metrics.patrol_swaps,
        f"{owned_ratio:.4f}",
        f"{owned_per_agent:.4f}",
        min_owned,
        max_owned,
        f"{checks_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        f"{max_speed:.6f}",
        f"{avg_goal_distance:.4f}",
        f"{max_goal_distance:.4f}",
        occupied_cells,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def _correlation(xs: list[float], ys: list[float]) -> float:
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    mean_x = sum(xs) / len(xs)
    mean_y = sum(ys) / len(ys)
    num = 0.0
    denom_x = 0.0
    denom_y = 0.0
    for x, y in zip(xs, ys):
        dx = x - mean_x
        dy = y - mean_y
        num += dx * dy
        denom_x += dx * dx
        denom_y += dy * dy
    denom = math.sqrt(denom_x * denom_y)
    if denom == 0.0:
        return 0.0
    return float(num / denom)


def build_config(
    config_path: Optional[Path] = None,
    seed: Optional[int] = None,
    scenario: Optional[str] = None,
    patrol: Optional[bool] = None,
) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if scenario is not None:
        config.scenario = scenario
    if patrol is not None:
        config.patrol_mode_enabled = patrol
    return config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config: Optional[SimulationConfig] = None,
) -> World:
    if config is None:
        config = SimulationConfig()
    if seed is not None:
        config.seed = seed

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    world = World(config)
    logger.info("running %d steps (seed=%d, scenario=%s)", steps, config.seed, Scenario(config.scenario).value)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    owned_series: list[float] = []
    checks_series: list[float] = []
    speed_series: list[float] = []
    max_tick_ms = (-1.0, -1)
    max_checks = (-1, -1)
    patrol_swaps = 0

    try:
        for _ in range(steps):
            world.tick()
            metrics = world.metrics
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            patrol_swaps += metrics.patrol_swaps

            if summary_path:
                tick_ms_series.append(tick_ms)
                owned_series.append(float(metrics.owned_markers))
                checks_series.append(float(metrics.candidate_checks))
                speed_series.append(metrics.average_speed)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, metrics.tick)
                if metrics.candidate_checks > max_checks[0]:
                    max_checks = (metrics.candidate_checks, metrics.tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "scenario": Scenario(config.scenario).value,
            "agents": len(world.agents),
            "markers": len(world.markers),
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "patrol_swaps": patrol_swaps,
            "tick_ms": _summary_stats(tick_ms_series),
            "owned_markers": _summary_stats(owned_series),
            "candidate_checks": _summary_stats(checks_series),
            "average_speed": _summary_stats(speed_series),
            "correlations": {
                "tick_ms_vs_candidate_checks": _correlation(tick_ms_series, checks_series),
            },
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "candidate_checks": {"value": max_checks[0], "tick": max_checks[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "owned_markers": _summary_stats(owned_series[tail_slice]),
                "average_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    logger.info("finished %d steps, %d patrol swaps", steps, patrol_swaps)
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless marker-field crowd simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with SimulationConfig fields")
    parser.add_argument("--scenario", choices=[s.value for s in Scenario], default=None)
    parser.add_argument(
        "--patrol",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Swap start and goal whenever an agent arrives.",
    )
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = build_config(args.config, args.seed, args.scenario, args.patrol)
    run_headless(
        args.steps,
        None,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
    )


if __name__ == "__main__":
    main()
