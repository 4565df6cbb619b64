"""CLI interface for gavel."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from gavel.comparator import ExtraLinePolicy, ShortLinePolicy, compare_output
from gavel.config import Config
from gavel.errors import JudgeError
from gavel.models import Submission, TestCase
from gavel.orchestrator import Orchestrator

CASE_SEPARATOR = "#"


def load_submission(fields: list[str]) -> Submission:
    """Build a Submission from ``ID LANGUAGE SOURCE TIME_MS MEMORY_KB COUNT IN#OUT...``.

    Raises ValueError with a readable message on malformed input.
    """
    if len(fields) < 6:
        raise ValueError("not enough arguments")
    submission_id, language, source = fields[0], fields[1], fields[2]
    time_limit_ms = _parse_int(fields[3], "time limit")
    memory_limit_kb = _parse_int(fields[4], "memory limit")
    count = _parse_int(fields[5], "test case number")

    if time_limit_ms <= 0 or memory_limit_kb <= 0:
        raise ValueError("time and memory limits must be greater than 0")
    if count < 1:
        raise ValueError("test_case_number must be greater than 0")
    case_fields = fields[6:]
    if len(case_fields) < count:
        raise ValueError("not enough test cases")

    test_cases = []
    for raw in case_fields[:count]:
        input_path, sep, expected_path = raw.partition(CASE_SEPARATOR)
        if not sep or not input_path or not expected_path:
            raise ValueError(f"test case must look like input{CASE_SEPARATOR}output, got {raw!r}")
        test_cases.append(TestCase(Path(input_path), Path(expected_path)))

    return Submission(
        id=submission_id,
        language=language,
        source_path=Path(source),
        time_limit_ms=time_limit_ms,
        memory_limit_kb=memory_limit_kb,
        test_cases=tuple(test_cases),
    )


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{what} must be an integer, got {value!r}") from None


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="gavel",
        description="gavel: compile and judge one submission",
    )
    subparsers = parser.add_subparsers(dest="command")

    judge_parser = subparsers.add_parser("judge", help="Judge a submission")
    judge_parser.add_argument(
        "fields",
        nargs="*",
        metavar="ARG",
        help="ID LANGUAGE SOURCE TIME_MS MEMORY_KB COUNT INPUT#EXPECTED...",
    )
    judge_parser.add_argument("--report-url", type=str, default=None, help="Result endpoint base URL")
    judge_parser.add_argument("--work-dir", type=str, default=None, help="Parent of scratch directories")
    judge_parser.add_argument(
        "--keep-scratch", action="store_true", default=False, help="Keep scratch files after judging"
    )
    judge_parser.add_argument("--quiet", action="store_true", default=False, help="No progress output")

    compare_parser = subparsers.add_parser("compare", help="Compare an output file with an answer")
    compare_parser.add_argument("produced", help="Program output")
    compare_parser.add_argument("expected", help="Expected output")
    compare_parser.add_argument(
        "--ignore-extra-lines", action="store_true", default=False,
        help="Stop at the shorter file instead of flagging leftover lines",
    )
    compare_parser.add_argument(
        "--strict-short-lines", action="store_true", default=False,
        help="Flag a produced line that is only a prefix of the expected one",
    )

    args = parser.parse_args(argv)

    if args.command == "judge":
        _judge(args)
    elif args.command == "compare":
        _compare(args)
    else:
        parser.print_help()
        sys.exit(1)


def _judge(args: argparse.Namespace) -> None:
    overrides: dict = {}
    if args.report_url is not None:
        overrides["report_url"] = args.report_url
    if args.work_dir is not None:
        overrides["work_dir"] = args.work_dir
    if args.keep_scratch:
        overrides["keep_scratch"] = True
    if args.quiet:
        overrides["verbose"] = False

    try:
        config = Config.from_env(**overrides)
        submission = load_submission(args.fields)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        Orchestrator(config).judge(submission)
    except JudgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _compare(args: argparse.Namespace) -> None:
    extra_lines = ExtraLinePolicy.IGNORE if args.ignore_extra_lines else ExtraLinePolicy.STRICT
    short_lines = ShortLinePolicy.STRICT if args.strict_short_lines else ShortLinePolicy.PREFIX
    try:
        outcome = compare_output(args.produced, args.expected, extra_lines, short_lines)
    except JudgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if outcome.matched:
        print("OK")
    else:
        print(outcome.diagnostic)
        sys.exit(1)


if __name__ == "__main__":
    main()
