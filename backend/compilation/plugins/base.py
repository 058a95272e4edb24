"""
Compiler plugin abstraction
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple

from ..errors import CompileFailedError
from ..invoker import ProcessResult
from ..models import CompilationRequest, CompilationResult
from ..workspace import remove_file, write_text

logger = logging.getLogger(__name__)


class CompilerPlugin(ABC):
    """
    Abstract base class for one language/toolchain flavor

    A request moves through create_source_file -> compile ->
    (generate_assembly | execute) -> cleanup. The dispatcher skips the
    middle step when compile() reports failure.
    """

    language: str = ''
    supported_compilers: Tuple[str, ...] = ()
    default_options: Tuple[str, ...] = ()
    default_executable: str = ''

    @abstractmethod
    def create_source_file(self, code: str, work_dir: Path) -> Path:
        """
        Write the code verbatim into work_dir

        Args:
            code: Source text from the request
            work_dir: Request workspace

        Returns:
            Path of the created source file
        """
        pass

    @abstractmethod
    def compile(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> CompilationResult:
        """Compile the source; nonzero exit or timeout is a failed result"""
        pass

    @abstractmethod
    def generate_assembly(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        """Return the disassembly / bytecode listing for the compiled source"""
        pass

    @abstractmethod
    def execute(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        """Run the program and return its merged stdout+stderr"""
        pass

    @abstractmethod
    def cleanup(self, source_path: Optional[Path]) -> None:
        """Delete the source and every known artifact; must never raise"""
        pass

    # ---------- shared helpers ----------

    def executable(self, request: CompilationRequest) -> str:
        return request.compiler_path or self.default_executable

    def write_source(self, work_dir: Path, file_name: str, code: str) -> Path:
        source_path = write_text(Path(work_dir) / file_name, code)
        logger.debug(f"Created {self.language} source file: {source_path}")
        return source_path

    def remove_artifacts(self, paths: List[Path]) -> None:
        for path in paths:
            remove_file(path)

    @staticmethod
    def diagnostic(result: ProcessResult, tool: str) -> str:
        """Compiler diagnostics, falling back to the exit code when the tool printed nothing"""
        text = result.stderr or result.stdout
        return text if text.strip() else f"{tool} exited with code {result.returncode}"

    def check_built(self, result: ProcessResult, tool: str) -> None:
        """Raise when a build step (e.g. the executable pass) failed"""
        if result.returncode != 0:
            raise CompileFailedError(f"{tool} compilation failed", self.diagnostic(result, tool))

    def log_exit_code(self, result: ProcessResult) -> None:
        if result.returncode != 0:
            logger.warning(f"{self.language} program exited with code {result.returncode}")


def sibling_tool(compiler_path: Optional[str], tool: str, fallback: str) -> str:
    """
    Resolve a companion tool installed next to the compiler (javap next to javac)

    Args:
        compiler_path: Configured compiler executable, bare name or full path
        tool: Companion executable name without extension
        fallback: Name to use when the compiler path has no directory part
    """
    if not compiler_path:
        return fallback
    directory, name = os.path.split(compiler_path)
    _, ext = os.path.splitext(name)
    if not directory:
        return fallback
    return os.path.join(directory, tool + ext)
