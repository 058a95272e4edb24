import os
import sys
import time
from pathlib import Path

import pytest

from compilation.errors import ToolchainTimeoutError, ToolchainUnavailableError
from compilation.invoker import run_process

posix_only = pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX-only")


def _is_running(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    # An orphan nobody has reaped yet still answers kill(pid, 0)
    stat = Path(f"/proc/{pid}/stat")
    if stat.exists():
        state = stat.read_text().rsplit(")", 1)[-1].split()[0]
        return state != "Z"
    return True


def test_captures_streams_separately():
    result = run_process([
        sys.executable, "-c",
        "import sys; print('to-out'); print('to-err', file=sys.stderr); sys.exit(3)",
    ])
    assert result.returncode == 3
    assert "to-out" in result.stdout
    assert "to-err" in result.stderr
    assert "to-err" not in result.stdout


def test_merge_stderr_into_stdout():
    result = run_process(
        [sys.executable, "-c", "import sys; print('a'); print('b', file=sys.stderr)"],
        merge_stderr=True,
    )
    assert "a" in result.stdout and "b" in result.stdout
    assert result.stderr == ""


def test_large_output_on_both_streams_does_not_deadlock():
    script = "import sys; sys.stdout.write('x' * 2000000); sys.stderr.write('y' * 2000000)"
    result = run_process([sys.executable, "-c", script], timeout_seconds=60)
    assert result.returncode == 0
    assert len(result.stdout) == 2000000
    assert len(result.stderr) == 2000000


def test_env_overlay_and_cwd(tmp_path: Path):
    result = run_process(
        [sys.executable, "-c", "import os; print(os.environ['OVERLAY_VAR']); print(os.getcwd())"],
        cwd=str(tmp_path),
        env={"OVERLAY_VAR": "overlaid"},
    )
    lines = result.stdout.splitlines()
    assert lines[0] == "overlaid"
    assert Path(lines[1]).resolve() == tmp_path.resolve()


def test_missing_executable_raises_unavailable():
    with pytest.raises(ToolchainUnavailableError):
        run_process(["definitely-not-a-real-compiler-xyz", "--version"])


def test_timeout_kills_process():
    start = time.monotonic()
    with pytest.raises(ToolchainTimeoutError) as excinfo:
        run_process([sys.executable, "-c", "import time; time.sleep(60)"], timeout_seconds=0.5,
                    description="Sleeper")
    assert time.monotonic() - start < 15
    assert "timed out" in str(excinfo.value)
    assert excinfo.value.pid is not None
    assert not _is_running(excinfo.value.pid)


@posix_only
@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="reads /proc")
def test_timeout_kills_whole_process_tree(tmp_path: Path):
    pid_file = tmp_path / "child.pid"
    script = (
        "import subprocess, sys, time\n"
        "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
        f"open({str(pid_file)!r}, 'w').write(str(child.pid))\n"
        "time.sleep(60)\n"
    )
    with pytest.raises(ToolchainTimeoutError):
        run_process([sys.executable, "-c", script], timeout_seconds=2)

    child_pid = int(pid_file.read_text())
    deadline = time.monotonic() + 5
    while _is_running(child_pid) and time.monotonic() < deadline:
        time.sleep(0.1)
    assert not _is_running(child_pid)


@posix_only
@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="reads /proc")
def test_background_child_does_not_hold_output_hostage(tmp_path: Path):
    pid_file = tmp_path / "child.pid"
    script = (
        "import subprocess, sys\n"
        "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        f"open({str(pid_file)!r}, 'w').write(str(child.pid))\n"
        "print('parent done', flush=True)\n"
    )
    start = time.monotonic()
    result = run_process([sys.executable, "-c", script], timeout_seconds=20, merge_stderr=True)
    elapsed = time.monotonic() - start

    assert result.returncode == 0
    assert "parent done" in result.stdout
    assert elapsed < 4

    child_pid = int(pid_file.read_text())
    deadline = time.monotonic() + 5
    while _is_running(child_pid) and time.monotonic() < deadline:
        time.sleep(0.1)
    assert not _is_running(child_pid)
