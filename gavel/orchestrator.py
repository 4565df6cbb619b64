"""Compile once, then run -> compare -> report every test case in order."""

from __future__ import annotations

import sys

from gavel.comparator import compare_output
from gavel.compiler import compile_source
from gavel.config import Config
from gavel.errors import EnvironmentFailure, FileFormatError, ReportError, UnsupportedLanguage
from gavel.executor import LocalExecutor
from gavel.executor_base import CaseExecutor
from gavel.models import (
    CaseResult,
    CompiledArtifact,
    CompileResult,
    ExecutionOutcome,
    JudgeSummary,
    OutcomeKind,
    Submission,
    TestCase,
    Verdict,
)
from gavel.reporter import Reporter, render_verdict
from gavel.workspace import Workspace


class Orchestrator:
    def __init__(
        self,
        config: Config,
        executor: CaseExecutor | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.config = config
        self._executor: CaseExecutor = executor or LocalExecutor(config.sandbox_limits())
        self._reporter: Reporter = reporter or config.create_reporter()

    def judge(self, submission: Submission) -> JudgeSummary:
        """Judge *submission*, reporting each result as soon as it exists.

        Verdicts are reported in case order. An EnvironmentFailure is reported
        as a SystemError for the case in progress and then re-raised.
        """
        summary = JudgeSummary(submission.id)
        self._log(f"Judging {submission.id}: {submission.language}, "
                  f"{len(submission.test_cases)} case(s), "
                  f"{submission.time_limit_ms} ms / {submission.memory_limit_kb} KB")

        workspace: Workspace | None = None
        current_case = 0
        try:
            workspace = Workspace.create(submission.id, self.config.work_dir)
            self._log("Compiling...")
            try:
                compiled = compile_source(
                    submission.language,
                    submission.source_path,
                    workspace,
                    timeout=self.config.compile_timeout,
                )
            except UnsupportedLanguage as e:
                compiled = CompileResult(diagnostics=str(e))
            artifact = compiled.artifact
            if artifact is None:
                self._log(f"Compile error: {compiled.diagnostics[:200]}")
                self._emit(summary, CaseResult(0, Verdict.compile_error(compiled.diagnostics)))
                return summary

            for current_case, case in enumerate(submission.test_cases, start=1):
                result = self._judge_case(submission, artifact, workspace, current_case, case)
                self._emit(summary, result)
            return summary
        except EnvironmentFailure as e:
            self._log(f"Environment failure on case {current_case}: {e}")
            self._emit(summary, CaseResult(current_case, Verdict.system_error(str(e))))
            raise
        finally:
            if workspace is not None and self.config.keep_scratch:
                self._log(f"Scratch files kept in {workspace.root}")
            elif workspace is not None:
                workspace.cleanup()

    def _judge_case(
        self,
        submission: Submission,
        artifact: CompiledArtifact,
        workspace: Workspace,
        number: int,
        case: TestCase,
    ) -> CaseResult:
        self._log(f"--- Case {number}/{len(submission.test_cases)} ---")
        outcome = self._executor.run_case(
            artifact,
            case.input_path,
            workspace.output_path(number),
            submission.time_limit_ms,
            submission.memory_limit_kb,
            stderr_path=workspace.stderr_path(number),
        )
        verdict = self._verdict_for(outcome, case)
        self._log(f"Case {number}: {render_verdict(verdict)[:200]} "
                  f"({outcome.elapsed_ms} ms, {outcome.peak_memory_kb} KB)")
        return CaseResult(number, verdict, outcome.elapsed_ms, outcome.peak_memory_kb)

    def _verdict_for(self, outcome: ExecutionOutcome, case: TestCase) -> Verdict:
        if outcome.kind is OutcomeKind.TIME_LIMIT:
            return Verdict.time_limit_exceeded()
        if outcome.kind is OutcomeKind.MEMORY_LIMIT:
            return Verdict.memory_limit_exceeded()
        if outcome.kind is OutcomeKind.RUNTIME_ERROR:
            return Verdict.runtime_error(outcome.detail)

        if outcome.output_path is None:
            return Verdict.runtime_error("no output captured")
        try:
            comparison = compare_output(
                outcome.output_path,
                case.expected_path,
                self.config.extra_lines,
                self.config.short_lines,
            )
        except FileFormatError as e:
            return Verdict.runtime_error(f"output format error: {e}")
        if comparison.matched:
            return Verdict.accepted()
        return Verdict.wrong_answer(comparison.diagnostic)

    def _emit(self, summary: JudgeSummary, result: CaseResult) -> None:
        summary.results.append(result)
        try:
            self._reporter.report(summary.submission_id, result)
        except ReportError as e:
            self._log(f"Failed to report case {result.case}: {e}")

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(message, file=sys.stderr)
