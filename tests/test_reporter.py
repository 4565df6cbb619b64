"""Tests for result rendering and delivery (HTTP mocked, no real server needed)."""

from __future__ import annotations

import io
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from gavel.errors import ReportError
from gavel.models import CaseResult, Verdict
from gavel.reporter import (
    ConsoleReporter,
    HttpReporter,
    HttpReporterConfig,
    Reporter,
    render_verdict,
    result_payload,
)


def _make_response(body: str = "OK"):
    resp = MagicMock()
    resp.text = body
    resp.raise_for_status = MagicMock()
    return resp


class TestRendering:
    def test_plain_verdicts(self):
        assert render_verdict(Verdict.accepted()) == "Accepted"
        assert render_verdict(Verdict.time_limit_exceeded()) == "TimeLimitExceeded"
        assert render_verdict(Verdict.memory_limit_exceeded()) == "MemoryLimitExceeded"

    def test_verdicts_with_detail(self):
        assert render_verdict(Verdict.wrong_answer("line 1 column 1: read s, expected 5")) == (
            "WrongAnswer: line 1 column 1: read s, expected 5"
        )
        assert render_verdict(Verdict.runtime_error("exit code 1")) == "RuntimeError: exit code 1"
        assert render_verdict(Verdict.compile_error("main.c:1: error")) == "CompileError: main.c:1: error"
        assert render_verdict(Verdict.system_error("no gcc")) == "SystemError: no gcc"

    def test_payload(self):
        payload = result_payload("123", CaseResult(2, Verdict.accepted(), 100, 2048))
        assert payload == {"id": "123", "case": 2, "result": "Accepted", "time": 100, "memory": 2048}


class TestHttpReporter:
    @patch("gavel.reporter.httpx.post")
    def test_posts_json_to_result_endpoint(self, mock_post):
        mock_post.return_value = _make_response("OK")
        reporter = HttpReporter(HttpReporterConfig(base_url="http://fake:8000/", timeout=3))
        reporter.report("abc", CaseResult(1, Verdict.wrong_answer("output too long on line 1"), 5, 6))

        call_kwargs = mock_post.call_args
        assert call_kwargs.args[0] == "http://fake:8000/result"
        payload = call_kwargs.kwargs["json"]
        assert payload["id"] == "abc"
        assert payload["result"] == "WrongAnswer: output too long on line 1"
        assert call_kwargs.kwargs["timeout"] == 3

    @patch("gavel.reporter.httpx.post")
    def test_unexpected_body(self, mock_post):
        mock_post.return_value = _make_response("NOPE")
        with pytest.raises(ReportError):
            HttpReporter().report("abc", CaseResult(1, Verdict.accepted()))

    @patch("gavel.reporter.httpx.post")
    def test_http_error_status(self, mock_post):
        resp = _make_response()
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "boom", request=MagicMock(), response=MagicMock(status_code=500)
        )
        mock_post.return_value = resp
        with pytest.raises(ReportError, match="500"):
            HttpReporter().report("abc", CaseResult(1, Verdict.accepted()))

    @patch("gavel.reporter.httpx.post")
    def test_connection_error(self, mock_post):
        mock_post.side_effect = httpx.ConnectError("refused")
        with pytest.raises(ReportError):
            HttpReporter().report("abc", CaseResult(1, Verdict.accepted()))

    @patch("gavel.reporter.httpx.post")
    def test_malformed_url(self, mock_post):
        mock_post.side_effect = httpx.InvalidURL("Invalid port: 'x'")
        reporter = HttpReporter(HttpReporterConfig(base_url="http://judge:x"))
        with pytest.raises(ReportError, match="invalid result endpoint"):
            reporter.report("abc", CaseResult(1, Verdict.accepted()))

    def test_unsupported_scheme(self):
        reporter = HttpReporter(HttpReporterConfig(base_url="ftp://judge"))
        with pytest.raises(ReportError):
            reporter.report("abc", CaseResult(1, Verdict.accepted()))


def test_console_reporter_prints_json_lines():
    stream = io.StringIO()
    reporter = ConsoleReporter(stream)
    reporter.report("s", CaseResult(0, Verdict.compile_error("bad")))
    reporter.report("s", CaseResult(1, Verdict.accepted(), 1, 2))
    lines = stream.getvalue().splitlines()
    assert [json.loads(line)["case"] for line in lines] == [0, 1]
    assert json.loads(lines[0])["result"] == "CompileError: bad"


def test_reporters_satisfy_protocol():
    assert isinstance(HttpReporter(), Reporter)
    assert isinstance(ConsoleReporter(), Reporter)
