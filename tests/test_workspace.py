"""Tests for per-submission scratch directories."""

from gavel.workspace import Workspace


def test_distinct_directories_per_run(tmp_path):
    first = Workspace.create("sub-1", tmp_path)
    second = Workspace.create("sub-1", tmp_path)
    assert first.root != second.root
    assert first.artifact_path != second.artifact_path


def test_directory_named_after_submission(tmp_path):
    ws = Workspace.create("abc/../../etc", tmp_path)
    assert ws.root.parent == tmp_path.resolve()
    assert ws.root.name.startswith("gavel_abc_.._.._etc_")


def test_case_paths_are_distinct(tmp_path):
    ws = Workspace.create("s", tmp_path)
    assert ws.output_path(1) != ws.output_path(2)
    assert ws.output_path(1) != ws.stderr_path(1)
    assert ws.diagnostics_path.parent == ws.root


def test_cleanup_removes_everything(tmp_path):
    with Workspace.create("s", tmp_path) as ws:
        ws.output_path(1).write_text("x")
    assert not ws.root.exists()


def test_relative_base_dir_gives_absolute_paths(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ws = Workspace.create("s", "scratch")
    assert ws.root.is_absolute()
    assert ws.root.parent == (tmp_path / "scratch").resolve()
    assert ws.artifact_path.is_absolute()
