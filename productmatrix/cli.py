"""Command-line frontend for the product matrix harness."""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from productmatrix.config import RunConfig, config_from_directory, load_manifest
from productmatrix.errors import HarnessError, ManifestError
from productmatrix.matrix import MATRIX_COLUMNS, VALID_CATEGORY, MatrixRow
from productmatrix.runner import CaseRunner, RunContext
from productmatrix.runtime import MatrixRuntime
from productmatrix.types import ExpectationMode

logger = logging.getLogger("productmatrix")


def _json_dump(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _configure_logging(verbosity: int) -> None:
    level = {-1: logging.WARNING, 0: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config(args: argparse.Namespace) -> RunConfig:
    target = Path(args.target)
    mode = ExpectationMode.STRICT if args.strict else None
    if target.is_dir():
        config = config_from_directory(target)
    else:
        config = load_manifest(target)

    overrides = {}
    if mode is not None:
        overrides["expectation_mode"] = mode
    if args.report:
        overrides["report_path"] = Path(args.report)
    if args.no_category:
        overrides["include_category"] = False
    if args.events:
        overrides["events_path"] = Path(args.events)
    return dataclasses.replace(config, **overrides)


def _cmd_run(args: argparse.Namespace) -> int:
    config = _load_config(args)
    report = MatrixRuntime(config).run()
    print(f"{report.total} case(s): {report.passed} PASS, {report.failed} FAIL -> {config.report_path}")
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    mode = ExpectationMode.STRICT if args.strict else ExpectationMode.LOOSE
    runner = CaseRunner(RunContext(expectation_mode=mode))
    outcome = runner.evaluate_row(MatrixRow.from_cells(args.tokens), category=args.category)
    _json_dump(outcome.to_dict())
    return 0 if outcome.matched else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="productmatrix",
        description="Validate Product entities against combinatorial test matrices",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_const", const=1, dest="verbosity", default=0)
    verbosity.add_argument("-q", "--quiet", action="store_const", const=-1, dest="verbosity")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run every matrix and write the report")
    run.add_argument("target", help="Directory of matrix files or a JSON run manifest")
    run.add_argument("--report", default=None, help="Report output path")
    run.add_argument("--strict", action="store_true", help="Require invalid rows to violate their targeted column")
    run.add_argument("--no-category", action="store_true", help="Omit the leading attribute column")
    run.add_argument("--events", default=None, help="Write run events as JSON Lines to this path")
    run.set_defaults(func=_cmd_run)

    check = subparsers.add_parser("check", help="Validate a single row of raw tokens")
    check.add_argument("tokens", nargs=len(MATRIX_COLUMNS), metavar="TOKEN", help=", ".join(MATRIX_COLUMNS))
    check.add_argument(
        "--category",
        default=VALID_CATEGORY,
        choices=(VALID_CATEGORY,) + MATRIX_COLUMNS,
        help="Matrix category the row belongs to",
    )
    check.add_argument("--strict", action="store_true")
    check.set_defaults(func=_cmd_check)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbosity)
    try:
        return args.func(args)
    except ManifestError as e:
        logger.error("%s", e)
        for error in e.errors:
            logger.error("  %s", error.message)
        return 1
    except HarnessError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
