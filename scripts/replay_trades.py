"""CLI entrypoint for replaying a trade scenario."""
from __future__ import annotations

import argparse
from dataclasses import asdict
from pathlib import Path

from ch.config import DEFAULT_CONFIG_PATH, load_config_with_overrides, resolve_config
from ch.logging.trades import make_run_id, prepare_run_dir, write_config_used
from ch.replay import load_scenario, replay
from ch.reporting import market_summary


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay trades through the clearing house.")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH))
    parser.add_argument("--override", action="append", default=[])
    parser.add_argument("--scenario", required=True)
    parser.add_argument("--out-dir", default="outputs/runs")
    parser.add_argument("--run-id")
    args = parser.parse_args()

    config = resolve_config(load_config_with_overrides(args.config, args.override))
    run_id = args.run_id or make_run_id()
    run_dir = prepare_run_dir(Path(args.out_dir), run_id)
    write_config_used(run_dir, {**asdict(config), "markets": list(config.markets)})

    clearing_house = replay(load_scenario(args.scenario), config, run_dir)
    print(market_summary(clearing_house.markets.values()).to_string(index=False))
    print(f"run_dir={run_dir}")


if __name__ == "__main__":
    main()
