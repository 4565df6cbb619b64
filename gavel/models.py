"""Data models for gavel."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class TestCase:
    input_path: Path
    expected_path: Path


@dataclass(frozen=True)
class Submission:
    id: str
    language: str
    source_path: Path
    time_limit_ms: int
    memory_limit_kb: int
    test_cases: tuple[TestCase, ...] = ()


@dataclass(frozen=True)
class CompiledArtifact:
    path: Path
    language: str


@dataclass(frozen=True)
class CompileResult:
    artifact: CompiledArtifact | None = None
    diagnostics: str = ""

    @property
    def ok(self) -> bool:
        return self.artifact is not None


class OutcomeKind(enum.Enum):
    COMPLETED = "completed"
    TIME_LIMIT = "time_limit"
    MEMORY_LIMIT = "memory_limit"
    RUNTIME_ERROR = "runtime_error"


@dataclass(frozen=True)
class ExecutionOutcome:
    kind: OutcomeKind
    elapsed_ms: int = 0
    peak_memory_kb: int = 0
    exit_code: int | None = None
    output_path: Path | None = None
    detail: str = ""


class VerdictKind(enum.Enum):
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "WrongAnswer"
    RUNTIME_ERROR = "RuntimeError"
    TIME_LIMIT_EXCEEDED = "TimeLimitExceeded"
    MEMORY_LIMIT_EXCEEDED = "MemoryLimitExceeded"
    COMPILE_ERROR = "CompileError"
    SYSTEM_ERROR = "SystemError"


@dataclass(frozen=True)
class Verdict:
    """Outcome classification for one case.

    Only WRONG_ANSWER, RUNTIME_ERROR, COMPILE_ERROR and SYSTEM_ERROR carry a
    diagnostic; use the constructors below rather than building one directly.
    """

    kind: VerdictKind
    detail: str = ""

    @classmethod
    def accepted(cls) -> Verdict:
        return cls(VerdictKind.ACCEPTED)

    @classmethod
    def wrong_answer(cls, detail: str) -> Verdict:
        return cls(VerdictKind.WRONG_ANSWER, detail)

    @classmethod
    def runtime_error(cls, detail: str) -> Verdict:
        return cls(VerdictKind.RUNTIME_ERROR, detail)

    @classmethod
    def time_limit_exceeded(cls) -> Verdict:
        return cls(VerdictKind.TIME_LIMIT_EXCEEDED)

    @classmethod
    def memory_limit_exceeded(cls) -> Verdict:
        return cls(VerdictKind.MEMORY_LIMIT_EXCEEDED)

    @classmethod
    def compile_error(cls, detail: str) -> Verdict:
        return cls(VerdictKind.COMPILE_ERROR, detail)

    @classmethod
    def system_error(cls, detail: str) -> Verdict:
        return cls(VerdictKind.SYSTEM_ERROR, detail)

    @property
    def is_accepted(self) -> bool:
        return self.kind is VerdictKind.ACCEPTED


@dataclass(frozen=True)
class CaseResult:
    case: int  # 0 means compilation failed and no case ran
    verdict: Verdict
    time_ms: int = 0
    memory_kb: int = 0


@dataclass(frozen=True)
class ComparisonOutcome:
    matched: bool
    diagnostic: str = ""

    @classmethod
    def match(cls) -> ComparisonOutcome:
        return cls(True)

    @classmethod
    def mismatch(cls, diagnostic: str) -> ComparisonOutcome:
        return cls(False, diagnostic)


@dataclass
class JudgeSummary:
    """What the orchestrator hands back once a submission is done."""

    submission_id: str
    results: list[CaseResult] = field(default_factory=list)

    @property
    def compiled(self) -> bool:
        return not (self.results and self.results[0].case == 0)

    @property
    def accepted(self) -> bool:
        return bool(self.results) and all(r.verdict.is_accepted for r in self.results)
