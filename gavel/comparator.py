"""Strict line/character output comparison."""

from __future__ import annotations

import enum
from itertools import zip_longest
from pathlib import Path

from gavel.errors import FileFormatError
from gavel.models import ComparisonOutcome


class ExtraLinePolicy(enum.Enum):
    STRICT = "strict"  # leftover lines on either side are a mismatch
    IGNORE = "ignore"  # stop at the shorter file


class ShortLinePolicy(enum.Enum):
    PREFIX = "prefix"  # a produced line that is a prefix of the expected one passes
    STRICT = "strict"  # it is reported as "output too short"


def compare_output(
    produced_path: str | Path,
    expected_path: str | Path,
    extra_lines: ExtraLinePolicy = ExtraLinePolicy.STRICT,
    short_lines: ShortLinePolicy = ShortLinePolicy.PREFIX,
) -> ComparisonOutcome:
    """Compare the program's output with the expected answer.

    Exact, case-sensitive and positional: no whitespace is normalised, so the
    diagnostics point at the first differing line and column.
    """
    produced = _read_lines(produced_path)
    expected = _read_lines(expected_path)

    for number, (want, got) in enumerate(zip_longest(expected, produced), start=1):
        if want is None or got is None:
            if extra_lines is ExtraLinePolicy.IGNORE:
                break
            if want is None:
                return ComparisonOutcome.mismatch(f"extra output on line {number}")
            return ComparisonOutcome.mismatch(f"missing output on line {number}")

        diagnostic = compare_line(number, want, got, short_lines)
        if diagnostic:
            return ComparisonOutcome.mismatch(diagnostic)

    return ComparisonOutcome.match()


def compare_line(
    number: int,
    expected: str,
    produced: str,
    short_lines: ShortLinePolicy = ShortLinePolicy.PREFIX,
) -> str:
    """Return a diagnostic for line *number*, or "" when the lines agree.

    The first differing column wins; a length difference is only reported
    when one line is a prefix of the other. Under the PREFIX policy a produced
    line shorter than the expected one is compared only up to its own length.
    """
    for column, (got, want) in enumerate(zip(produced, expected), start=1):
        if got != want:
            return f"line {number} column {column}: read {got}, expected {want}"
    if len(expected) < len(produced):
        return f"output too long on line {number}"
    if short_lines is ShortLinePolicy.STRICT and len(produced) < len(expected):
        return f"output too short on line {number}"
    return ""


def _read_lines(path: str | Path) -> list[str]:
    try:
        with open(path, encoding="utf-8", errors="strict") as f:
            lines = f.read().split("\n")
    except UnicodeDecodeError as e:
        raise FileFormatError(f"{path} is not valid UTF-8 text: {e}") from e
    except OSError as e:
        raise FileFormatError(f"cannot read {path}: {e}") from e
    # a final newline terminates the last line rather than starting a new one
    if lines[-1] == "":
        lines.pop()
    return lines
