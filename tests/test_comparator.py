"""Tests for the strict output comparator."""

from __future__ import annotations

import pytest

from gavel.comparator import ExtraLinePolicy, ShortLinePolicy, compare_line, compare_output
from gavel.errors import FileFormatError


def _files(tmp_path, produced: bytes | str, expected: bytes | str):
    out = tmp_path / "produced.txt"
    ans = tmp_path / "expected.txt"
    for path, data in ((out, produced), (ans, expected)):
        if isinstance(data, str):
            data = data.encode()
        path.write_bytes(data)
    return out, ans


def test_identical_output_matches(tmp_path):
    result = compare_output(*_files(tmp_path, "5\n", "5\n"))
    assert result.matched
    assert result.diagnostic == ""


def test_first_differing_character(tmp_path):
    result = compare_output(*_files(tmp_path, "six\n", "5\n"))
    assert not result.matched
    assert result.diagnostic == "line 1 column 1: read s, expected 5"


def test_output_too_long(tmp_path):
    result = compare_output(*_files(tmp_path, "abc\n", "ab\n"))
    assert not result.matched
    assert result.diagnostic == "output too long on line 1"


class TestShortLines:
    def test_prefix_of_expected_line_matches_by_default(self, tmp_path):
        assert compare_output(*_files(tmp_path, "ab\n", "abc\n")).matched

    def test_prefix_policy_still_checks_columns(self, tmp_path):
        result = compare_output(*_files(tmp_path, "ax\n", "abc\n"))
        assert result.diagnostic == "line 1 column 2: read x, expected b"

    def test_strict_policy_reports_short_line(self, tmp_path):
        produced, expected = _files(tmp_path, "ab\n", "abc\n")
        result = compare_output(produced, expected, short_lines=ShortLinePolicy.STRICT)
        assert not result.matched
        assert result.diagnostic == "output too short on line 1"

    def test_strict_policy_accepts_equal_lines(self, tmp_path):
        produced, expected = _files(tmp_path, "abc\n", "abc\n")
        assert compare_output(produced, expected, short_lines=ShortLinePolicy.STRICT).matched

    def test_compare_line_policies(self):
        assert compare_line(2, "abc", "") == ""
        assert compare_line(2, "abc", "", ShortLinePolicy.STRICT) == "output too short on line 2"


def test_reports_line_and_column(tmp_path):
    result = compare_output(*_files(tmp_path, "1 2 3\n4 5 7\n", "1 2 3\n4 5 6\n"))
    assert result.diagnostic == "line 2 column 5: read 7, expected 6"


def test_case_sensitive(tmp_path):
    result = compare_output(*_files(tmp_path, "yes\n", "YES\n"))
    assert result.diagnostic == "line 1 column 1: read y, expected Y"


def test_trailing_whitespace_is_significant(tmp_path):
    result = compare_output(*_files(tmp_path, "1 \n", "1\n"))
    assert result.diagnostic == "output too long on line 1"


def test_crlf_and_lf_are_the_same_line_break(tmp_path):
    assert compare_output(*_files(tmp_path, "1\r\n2\r\n", "1\n2\n")).matched


def test_missing_final_newline_matches(tmp_path):
    assert compare_output(*_files(tmp_path, "1\n2", "1\n2\n")).matched


def test_empty_files_match(tmp_path):
    assert compare_output(*_files(tmp_path, "", "")).matched


class TestExtraLines:
    def test_extra_output_is_mismatch_by_default(self, tmp_path):
        result = compare_output(*_files(tmp_path, "1\n2\n", "1\n"))
        assert result.diagnostic == "extra output on line 2"

    def test_missing_output_is_mismatch_by_default(self, tmp_path):
        result = compare_output(*_files(tmp_path, "1\n", "1\n2\n"))
        assert result.diagnostic == "missing output on line 2"

    def test_empty_output_against_answer(self, tmp_path):
        result = compare_output(*_files(tmp_path, "", "42\n"))
        assert result.diagnostic == "missing output on line 1"

    def test_ignore_policy_stops_at_shorter_file(self, tmp_path):
        produced, expected = _files(tmp_path, "1\n2\n3\n", "1\n")
        assert compare_output(produced, expected, ExtraLinePolicy.IGNORE).matched
        assert compare_output(expected, produced, ExtraLinePolicy.IGNORE).matched

    def test_ignore_policy_still_checks_paired_lines(self, tmp_path):
        produced, expected = _files(tmp_path, "1\n9\n", "1\n2\n3\n")
        result = compare_output(produced, expected, ExtraLinePolicy.IGNORE)
        assert result.diagnostic == "line 2 column 1: read 9, expected 2"


def test_same_files_give_same_outcome(tmp_path):
    produced, expected = _files(tmp_path, "10\n20\n", "10\n21\n")
    first = compare_output(produced, expected)
    assert first == compare_output(produced, expected)
    assert first.diagnostic == "line 2 column 2: read 0, expected 1"


def test_undecodable_output_is_format_error(tmp_path):
    produced, expected = _files(tmp_path, b"\xff\xfe\x00bad\n", "5\n")
    with pytest.raises(FileFormatError):
        compare_output(produced, expected)


def test_missing_file_is_format_error(tmp_path):
    _, expected = _files(tmp_path, "5\n", "5\n")
    with pytest.raises(FileFormatError):
        compare_output(tmp_path / "nope.txt", expected)


def test_compare_line_equal():
    assert compare_line(3, "abc", "abc") == ""
