"""
Filesystem workspaces: one per server instance, one per request beneath it
"""

import logging
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from .errors import WorkspaceError
from .settings import WORKSPACE_ROOT

logger = logging.getLogger(__name__)

INSTANCE_PREFIX = 'compiler-explorer-'


def remove_tree(path: Union[str, Path]) -> bool:
    """
    Recursively delete a directory, deepest entries first

    Args:
        path: Directory to delete

    Returns:
        True if the directory is gone afterwards (including when it never existed)
    """
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Failed to cleanup directory {path}: {e}")
        return False
    return True


def remove_file(path: Union[str, Path]) -> bool:
    """Delete a single file if present; failures are logged, never raised"""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Failed to delete {path}: {e}")
        return False
    return True


def write_text(path: Path, content: str) -> Path:
    try:
        path.write_text(content, encoding='utf-8')
    except OSError as e:
        raise WorkspaceError(f"Failed to write {path.name}: {e}") from e
    return path


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        raise WorkspaceError(f"Failed to read {path.name}: {e}") from e


class InstanceWorkspace:
    """
    Private temp directory owned by this server instance

    Each request gets its own uniquely named subdirectory through
    request_workspace(); the instance directory itself goes away on close().
    """

    def __init__(self, root: Optional[str] = None):
        try:
            self.path = Path(tempfile.mkdtemp(
                prefix=f"{INSTANCE_PREFIX}{uuid.uuid4()}-",
                dir=root or WORKSPACE_ROOT
            ))
        except OSError as e:
            raise WorkspaceError(f"Failed to create working directory: {e}") from e

        try:
            self.path.chmod(0o700)
        except (NotImplementedError, OSError):
            logger.debug("Owner-only permissions not supported on this system")

        logger.info(f"Created working directory: {self.path}")

    @contextmanager
    def request_workspace(self) -> Iterator[Path]:
        """
        Create a fresh directory for one request and delete it afterwards

        Yields:
            Path of the new request directory
        """
        request_dir = self.path / uuid.uuid4().hex
        try:
            request_dir.mkdir()
        except OSError as e:
            raise WorkspaceError(f"Failed to create request workspace: {e}") from e

        logger.debug(f"Created request workspace: {request_dir}")
        try:
            yield request_dir
        finally:
            remove_tree(request_dir)

    def close(self) -> None:
        if remove_tree(self.path):
            logger.info(f"Cleaned up working directory: {self.path}")

    def __enter__(self) -> 'InstanceWorkspace':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
