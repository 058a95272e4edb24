import os
import stat
from pathlib import Path

import pytest

from compilation.workspace import InstanceWorkspace, remove_file, remove_tree


def test_instance_workspace_is_private(tmp_path: Path):
    workspace = InstanceWorkspace(root=str(tmp_path))
    try:
        assert workspace.path.is_dir()
        assert workspace.path.parent == tmp_path
        assert workspace.path.name.startswith("compiler-explorer-")
        if os.name == "posix":
            assert stat.S_IMODE(workspace.path.stat().st_mode) == 0o700
    finally:
        workspace.close()
    assert not workspace.path.exists()


def test_request_workspace_removed_after_use(instance_workspace: InstanceWorkspace):
    with instance_workspace.request_workspace() as work_dir:
        assert work_dir.parent == instance_workspace.path
        (work_dir / "nested").mkdir()
        (work_dir / "nested" / "a.o").write_bytes(b"\x00")
        (work_dir / "source.cpp").write_text("int main() {}")
    assert not work_dir.exists()
    assert list(instance_workspace.path.iterdir()) == []


def test_request_workspace_removed_on_exception(instance_workspace: InstanceWorkspace):
    with pytest.raises(RuntimeError):
        with instance_workspace.request_workspace() as work_dir:
            (work_dir / "source.cpp").write_text("int main() {}")
            raise RuntimeError("boom")
    assert not work_dir.exists()


def test_request_workspaces_are_unique(instance_workspace: InstanceWorkspace):
    with instance_workspace.request_workspace() as first:
        with instance_workspace.request_workspace() as second:
            assert first != second
            assert first.is_dir() and second.is_dir()


def test_close_removes_leftover_request_dirs(tmp_path: Path):
    workspace = InstanceWorkspace(root=str(tmp_path))
    (workspace.path / "stale").mkdir()
    (workspace.path / "stale" / "x.class").write_bytes(b"")
    workspace.close()
    assert not workspace.path.exists()
    # Second close is a no-op
    workspace.close()


def test_remove_helpers_are_idempotent(tmp_path: Path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    assert remove_file(target)
    assert remove_file(target)
    assert remove_tree(tmp_path / "missing-dir")
