"""Result delivery: verdict rendering plus HTTP and console reporters."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Protocol, TextIO, runtime_checkable

import httpx

from gavel.errors import ReportError
from gavel.models import CaseResult, Verdict, VerdictKind

RESULT_PATH = "/result"

_DETAILED = {
    VerdictKind.WRONG_ANSWER,
    VerdictKind.RUNTIME_ERROR,
    VerdictKind.COMPILE_ERROR,
    VerdictKind.SYSTEM_ERROR,
}


def render_verdict(verdict: Verdict) -> str:
    """Wire form of a verdict, e.g. ``"WrongAnswer: line 1 column 1: ..."``."""
    if verdict.kind in _DETAILED:
        return f"{verdict.kind.value}: {verdict.detail}"
    return verdict.kind.value


def result_payload(submission_id: str, result: CaseResult) -> dict:
    return {
        "id": submission_id,
        "case": result.case,
        "result": render_verdict(result.verdict),
        "time": result.time_ms,
        "memory": result.memory_kb,
    }


@runtime_checkable
class Reporter(Protocol):
    def report(self, submission_id: str, result: CaseResult) -> None: ...


@dataclass
class HttpReporterConfig:
    base_url: str = "http://localhost:8000"
    timeout: float = 10.0


class HttpReporter:
    """POSTs each result as JSON; the endpoint answers with a plain ``OK``."""

    def __init__(self, config: HttpReporterConfig | None = None) -> None:
        self._config = config or HttpReporterConfig()

    @property
    def url(self) -> str:
        return self._config.base_url.rstrip("/") + RESULT_PATH

    def report(self, submission_id: str, result: CaseResult) -> None:
        try:
            resp = httpx.post(
                self.url,
                json=result_payload(submission_id, result),
                headers={"Content-Type": "application/json"},
                timeout=self._config.timeout,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ReportError(f"result endpoint answered {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ReportError(f"cannot reach {self.url}: {e}") from e
        except httpx.InvalidURL as e:
            raise ReportError(f"invalid result endpoint {self.url!r}: {e}") from e

        body = resp.text.strip()
        if body != "OK":
            raise ReportError(f"result endpoint rejected case {result.case}: {body[:200]!r}")


class ConsoleReporter:
    """Prints one JSON object per result, for dry runs and local debugging."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def report(self, submission_id: str, result: CaseResult) -> None:
        stream = self._stream or sys.stdout
        print(json.dumps(result_payload(submission_id, result)), file=stream, flush=True)
