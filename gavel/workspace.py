"""Per-submission scratch directory.

Every file the pipeline writes (artifact, compiler diagnostics, per-case
output and stderr) lives under one directory created for a single judging run,
so concurrent runs never collide.
"""

from __future__ import annotations

import re
import shutil
import tempfile
from pathlib import Path

from gavel.errors import EnvironmentFailure

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class Workspace:
    def __init__(self, root: Path) -> None:
        self.root = root

    @classmethod
    def create(cls, submission_id: str, base_dir: str | Path | None = None) -> Workspace:
        """Create a fresh, uniquely named directory for *submission_id*."""
        tag = _UNSAFE_CHARS.sub("_", submission_id)[:48] or "submission"
        try:
            if base_dir is not None:
                Path(base_dir).mkdir(parents=True, exist_ok=True)
            root = tempfile.mkdtemp(prefix=f"gavel_{tag}_", dir=base_dir)
        except OSError as e:
            raise EnvironmentFailure(f"cannot create scratch directory: {e}") from e
        return cls(Path(root).resolve())

    @property
    def artifact_path(self) -> Path:
        return self.root / "main.out"

    @property
    def diagnostics_path(self) -> Path:
        return self.root / "compile_error.txt"

    def output_path(self, case: int) -> Path:
        return self.root / f"case_{case}.out"

    def stderr_path(self, case: int) -> Path:
        return self.root / f"case_{case}.err"

    def cleanup(self) -> None:
        shutil.rmtree(self.root, ignore_errors=True)

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, *exc_info) -> None:
        self.cleanup()
