"""Abstract executor interface for running one test case."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from gavel.models import CompiledArtifact, ExecutionOutcome


@runtime_checkable
class CaseExecutor(Protocol):
    def run_case(
        self,
        artifact: CompiledArtifact,
        input_path: Path,
        output_path: Path,
        time_limit_ms: int,
        memory_limit_kb: int,
        stderr_path: Path | None = None,
    ) -> ExecutionOutcome: ...
