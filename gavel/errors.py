"""Exception types raised by the judging pipeline."""

from __future__ import annotations


class JudgeError(Exception):
    """Base class for errors that stop judging (as opposed to verdicts)."""


class UnsupportedLanguage(JudgeError):
    def __init__(self, language: str) -> None:
        super().__init__(f"language not supported: {language}")
        self.language = language


class EnvironmentFailure(JudgeError):
    """Infrastructure problem: missing compiler, unspawnable process, unusable scratch dir."""


class FileFormatError(JudgeError):
    """An output or expected-output file could not be read as text."""


class ReportError(JudgeError):
    """A result could not be delivered to the reporting endpoint."""
