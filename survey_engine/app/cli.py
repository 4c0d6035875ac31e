from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from survey_engine.analysis.orchestrator import analyze_survey_file
from survey_engine.app.config import Settings
from survey_engine.app.logging import setup_logging
from survey_engine.ingest.models import ParseOptions


EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class SurveyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def build_parser() -> argparse.ArgumentParser:
    parser = SurveyArgumentParser(
        prog="survey-engine",
        description="Parse and analyze employee satisfaction survey exports.",
    )
    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Analyze one .xlsx or .csv survey export")
    analyze.add_argument("path", help="Path to the survey file")
    analyze.add_argument("--sheet", default=None, help="Sheet name (default: first sheet)")
    analyze.add_argument("--header-row", type=int, default=0, help="Zero-based header row index")
    analyze.add_argument("--skip-empty-rows", action="store_true", help="Drop all-blank data rows")
    analyze.add_argument("--max-rows", type=int, default=None, help="Read at most N data rows")
    analyze.add_argument("--summary-only", action="store_true", help="Print only the summary block")
    return parser


def run_analyze(args: argparse.Namespace, settings: Settings) -> int:
    path = Path(args.path)
    try:
        buffer = path.read_bytes()
    except OSError as e:
        raise CliError(f"Cannot read {path}: {e}", EXIT_COMMAND_ERROR) from e

    options = ParseOptions(
        sheet_name=args.sheet,
        header_row=args.header_row,
        skip_empty_rows=args.skip_empty_rows,
        max_rows=args.max_rows,
    )
    result = analyze_survey_file(buffer, options, file_name=path.name, settings=settings)

    if not result["success"]:
        print(json_dumps(result))
        return EXIT_PARSE_FAILED

    print(json_dumps(result["data"]["summary"] if args.summary_only else result))
    return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        if args.command is None:
            raise CliError("A command is required (try: survey-engine analyze <path>)")

        settings = Settings.from_env()
        setup_logging(settings.log_level, settings.log_json)
        return run_analyze(args, settings)
    except CliError as e:
        eprint(f"survey-engine: {e}")
        return e.code


if __name__ == "__main__":
    raise SystemExit(main())
