from __future__ import annotations

import argparse
from pathlib import Path

from arcaneanvil.engine.ai import AISpec, ai_play_run
from arcaneanvil.engine.run import RunConfig, new_run
from arcaneanvil.paths import get_paths
from arcaneanvil.services.content import ContentService
from arcaneanvil.services.persistence import JsonPersistence
from arcaneanvil.services.telemetry import TelemetryService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="arcaneanvil-sim",
        description="Play seeded autoplay runs headlessly and print a summary.",
    )
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument("--runs", type=int, default=1)
    parser.add_argument("--difficulty", type=int, choices=(0, 1, 2), default=1)
    parser.add_argument("--width", type=int, default=8)
    parser.add_argument("--height", type=int, default=8)
    parser.add_argument("--userdata", type=Path, default=None)
    parser.add_argument("--telemetry", action="store_true", help="append feedback/progress records to JSONL")
    args = parser.parse_args(argv)

    paths = get_paths(args.userdata)
    catalog = ContentService(paths.data_dir, paths.schema_dir).load_enchantments()
    persistence = JsonPersistence(paths.userdata_dir / "save.json")
    telemetry = TelemetryService(paths.userdata_dir / "telemetry.jsonl") if args.telemetry else None
    config = RunConfig(board_width=args.width, board_height=args.height)
    spec = AISpec(difficulty=args.difficulty)

    for i in range(args.runs):
        seed = args.seed + i
        run = new_run(
            catalog,
            seed,
            config,
            feedback=telemetry,
            persistence=persistence,
            progress=telemetry,
        )
        ai_play_run(run, spec)
        cards = ", ".join(c.display_name for c in run.active_enchantments) or "-"
        print(
            f"seed={seed} state={run.state} level={run.level} score={run.score} "
            f"gold={run.gold} max_combo={run.max_combo} cards=[{cards}]"
        )

    print(f"high_score={persistence.load_high_score()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
