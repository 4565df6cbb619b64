"""Compilation stage: source file -> executable in the submission's workspace."""

from __future__ import annotations

import subprocess
from pathlib import Path

from gavel.errors import EnvironmentFailure
from gavel.models import CompiledArtifact, CompileResult
from gavel.toolchains import resolve_toolchain
from gavel.workspace import Workspace


def build_command(language: str, source_path: Path, artifact_path: Path) -> list[str]:
    """Return the compiler argv; raises UnsupportedLanguage for unknown tags."""
    toolchain = resolve_toolchain(language)
    return [toolchain.compiler, str(source_path), *toolchain.flags, "-o", str(artifact_path)]


def compile_source(
    language: str,
    source_path: str | Path,
    workspace: Workspace,
    timeout: float = 30,
) -> CompileResult:
    """Compile *source_path* once.

    Compiler stderr goes to the workspace diagnostics file and is returned
    verbatim when the compiler fails. A compiler that cannot be started is an
    EnvironmentFailure, not a compile error.
    """
    # the compiler runs inside the workspace, so a relative source must be anchored first
    cmd = build_command(language, Path(source_path).resolve(), workspace.artifact_path)

    try:
        with open(workspace.diagnostics_path, "wb") as err:
            proc = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=err,
                cwd=workspace.root,
                timeout=timeout,
            )
    except subprocess.TimeoutExpired:
        return CompileResult(diagnostics=f"Compilation timed out after {timeout:g} s")
    except OSError as e:
        raise EnvironmentFailure(f"cannot run compiler {cmd[0]!r}: {e}") from e

    if proc.returncode != 0:
        diagnostics = _read_diagnostics(workspace.diagnostics_path)
        return CompileResult(
            diagnostics=diagnostics or f"compiler exited with status {proc.returncode}"
        )

    if not workspace.artifact_path.is_file():
        raise EnvironmentFailure(f"compiler succeeded but produced no {workspace.artifact_path}")
    return CompileResult(artifact=CompiledArtifact(workspace.artifact_path, language))


def _read_diagnostics(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8", errors="replace")
    except OSError as e:
        raise EnvironmentFailure(f"cannot read compiler diagnostics: {e}") from e
