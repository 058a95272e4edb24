"""
Toolchain invocation: run one external process under a wall-clock timeout
"""

import logging
import os
import signal
import subprocess
import threading
from typing import IO, List, Mapping, Optional

from pydantic import BaseModel

from .errors import ToolchainTimeoutError, ToolchainUnavailableError, WorkspaceError
from .settings import TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

# How long to wait for the reader threads once the process is gone
_READER_JOIN_SECONDS = 5


class ProcessResult(BaseModel):
    """Exit status and captured streams of a finished process"""
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout followed by stderr"""
        return self.stdout + self.stderr


def _drain(stream: IO[bytes], chunks: List[bytes]) -> None:
    """Read a pipe to EOF; runs on its own thread so the child never blocks on a full pipe"""
    try:
        # read1 returns whatever is buffered instead of waiting for a full chunk
        for chunk in iter(lambda: stream.read1(8192), b''):
            chunks.append(chunk)
    except (OSError, ValueError) as e:
        logger.warning(f"Error reading process output: {e}")
    finally:
        stream.close()


def _decode(chunks: List[bytes]) -> str:
    return b''.join(chunks).decode('utf-8', errors='replace')


def kill_process_tree(process: subprocess.Popen) -> None:
    """
    Forcibly terminate a process and everything it spawned

    On POSIX the child runs in its own session, so SIGKILL goes to the whole
    process group. On Windows taskkill /T walks the tree (cmd.exe wrappers
    spawn the real compiler).
    """
    if process.poll() is not None:
        return
    try:
        if os.name == 'nt':
            subprocess.run(
                ['taskkill', '/F', '/T', '/PID', str(process.pid)],
                capture_output=True,
                timeout=5
            )
        else:
            os.killpg(process.pid, signal.SIGKILL)
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"Failed to kill process tree {process.pid}: {e}")
    if process.poll() is None:
        process.kill()


def kill_leftover_group(process: subprocess.Popen) -> None:
    """
    Kill whatever is still running in an exited process's group

    A background child can outlive the toolchain and keep the output pipe
    open. On POSIX the group survives its leader, so it is still reachable
    through the leader's pid. Windows has no equivalent once the parent is
    gone.
    """
    if os.name == 'nt':
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        return
    except OSError as e:
        logger.warning(f"Failed to kill leftover processes of {process.pid}: {e}")
        return
    logger.debug(f"Killed leftover processes in group {process.pid}")


def run_process(
    command: List[str],
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout_seconds: float = TIMEOUT_SECONDS,
    merge_stderr: bool = False,
    description: Optional[str] = None
) -> ProcessResult:
    """
    Run a command and capture its output

    Args:
        command: Executable followed by its arguments (never a shell string)
        cwd: Working directory for the process
        env: Variables overlaid on the current environment
        timeout_seconds: Wall-clock limit for the process
        merge_stderr: Send stderr into the stdout buffer
        description: Human-readable name used in error messages

    Returns:
        ProcessResult with exit code and captured streams

    Raises:
        ToolchainUnavailableError: If the executable cannot be found
        ToolchainTimeoutError: If the process outlives the timeout (it is killed first)
        WorkspaceError: If the process cannot be started for another OS reason
    """
    description = description or os.path.basename(command[0])
    process_env = None
    if env is not None:
        process_env = dict(os.environ)
        process_env.update(env)

    popen_kwargs = {
        'cwd': cwd,
        'env': process_env,
        'stdin': subprocess.DEVNULL,
        'stdout': subprocess.PIPE,
        'stderr': subprocess.STDOUT if merge_stderr else subprocess.PIPE,
    }
    if os.name == 'nt':
        popen_kwargs['creationflags'] = subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        popen_kwargs['start_new_session'] = True

    logger.debug(f"Running {command} (cwd={cwd}, timeout={timeout_seconds}s)")

    try:
        process = subprocess.Popen(command, **popen_kwargs)
    except FileNotFoundError as e:
        raise ToolchainUnavailableError(f"{description}: executable not found: {command[0]}") from e
    except OSError as e:
        raise WorkspaceError(f"{description}: failed to start {command[0]}: {e}") from e

    stdout_chunks: List[bytes] = []
    stderr_chunks: List[bytes] = []
    readers = [threading.Thread(target=_drain, args=(process.stdout, stdout_chunks), daemon=True)]
    if not merge_stderr:
        readers.append(threading.Thread(target=_drain, args=(process.stderr, stderr_chunks), daemon=True))
    for reader in readers:
        reader.start()

    try:
        returncode = process.wait(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        kill_process_tree(process)
        process.wait()
        logger.warning(f"{description} timed out after {timeout_seconds}s; killed pid {process.pid}")
        raise ToolchainTimeoutError(description, timeout_seconds, pid=process.pid)
    finally:
        # Readers only see EOF once every holder of the pipe is gone
        kill_leftover_group(process)
        for reader in readers:
            reader.join(_READER_JOIN_SECONDS)

    return ProcessResult(
        returncode=returncode,
        stdout=_decode(stdout_chunks),
        stderr=_decode(stderr_chunks)
    )
