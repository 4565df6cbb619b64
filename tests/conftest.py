"""Shared fixtures: throwaway artifacts and compiler availability."""

from __future__ import annotations

import shutil
import sys

import pytest

from gavel.models import CompiledArtifact

requires_posix = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups required")
requires_gcc = pytest.mark.skipif(shutil.which("gcc") is None, reason="gcc not installed")
requires_gxx = pytest.mark.skipif(shutil.which("g++") is None, reason="g++ not installed")


@pytest.fixture
def make_script(tmp_path):
    """Write an executable /bin/sh script and return it as an artifact."""

    def _make(body: str, name: str = "prog.sh") -> CompiledArtifact:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(0o755)
        return CompiledArtifact(path, "sh")

    return _make


@pytest.fixture
def input_file(tmp_path):
    def _make(content: str = "", name: str = "in.txt"):
        path = tmp_path / name
        path.write_text(content)
        return path

    return _make
