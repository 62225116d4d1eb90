"""Generate a timetable from a JSON request file.

Run:
  timetable-engine request.json --policy genetic --seed 7 --output timetable.json

Exit codes: 0 when the timetable has no remaining issues, 1 for a best-effort
timetable, 2 when the input is rejected.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from pydantic import ValidationError

from timetable_engine.core.config import get_settings
from timetable_engine.core.exceptions import AppError, ConfigurationError, InfeasibleScheduleError
from timetable_engine.schemas.generator import GenerateTimetableRequest, GenerationSettings
from timetable_engine.services.timetable_engine import TimetableEngine

logger = logging.getLogger(__name__)


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level '{level_name}'")
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="timetable-engine", description="Generate a weekly class timetable.")
    parser.add_argument("input", type=Path, help="JSON file holding a timetable generation request")
    parser.add_argument("--policy", choices=["greedy", "genetic"], help="placement policy to use")
    parser.add_argument("--seed", type=int, help="random seed for reproducible runs")
    parser.add_argument("--output", type=Path, help="write the response here instead of stdout")
    parser.add_argument("--log-level", help="logging level, defaults to LOG_LEVEL from settings")
    return parser


def _resolve_settings(request: GenerateTimetableRequest, args: argparse.Namespace) -> GenerationSettings:
    settings = request.settings or GenerationSettings(placement_policy=get_settings().default_placement_policy)
    overrides = {}
    if args.policy:
        overrides["placement_policy"] = args.policy
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    return GenerationSettings.model_validate({**settings.model_dump(), **overrides})


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        _configure_logging(args.log_level or get_settings().log_level)
        request = GenerateTimetableRequest.model_validate_json(args.input.read_text(encoding="utf-8"))
        settings = _resolve_settings(request, args)
        response = TimetableEngine(request, settings).run()
    except ValidationError as exc:
        print(f"Invalid request: {exc}", file=sys.stderr)
        return 2
    except InfeasibleScheduleError as exc:
        print("Timetable input is infeasible:", file=sys.stderr)
        for reason in exc.reasons:
            print(f"  - {reason}", file=sys.stderr)
        return 2
    except AppError as exc:
        print(exc.message, file=sys.stderr)
        return 2

    body = response.model_dump_json(indent=2)
    if args.output:
        args.output.write_text(body, encoding="utf-8")
        logger.info("Timetable written to %s", args.output)
    else:
        print(body)
    return 0 if response.success else 1


if __name__ == "__main__":
    sys.exit(main())
