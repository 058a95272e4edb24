"""
Python: py_compile for the syntax check, dis for the bytecode listing
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from ..errors import CompileFailedError, ToolchainTimeoutError
from ..invoker import run_process
from ..models import CompilationRequest, CompilationResult
from ..workspace import remove_tree
from .base import CompilerPlugin

logger = logging.getLogger(__name__)

# Reads the path from argv so nothing user-controlled is spliced into code
DISASSEMBLE_SCRIPT = (
    "import dis, os, sys\n"
    "path = sys.argv[1]\n"
    "with open(path, 'r', encoding='utf-8') as f:\n"
    "    code = compile(f.read(), os.path.basename(path), 'exec')\n"
    "dis.dis(code)\n"
)


class PythonPlugin(CompilerPlugin):
    language = 'python'
    supported_compilers = ('python', 'python3')
    default_options = ()
    default_executable = 'python3'

    def create_source_file(self, code: str, work_dir: Path) -> Path:
        return self.write_source(work_dir, f"snippet_{uuid.uuid4().hex}.py", code)

    def compile(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> CompilationResult:
        try:
            result = run_process(
                [self.executable(request), '-m', 'py_compile', str(source_path)],
                cwd=str(source_path.parent),
                timeout_seconds=timeout_seconds,
                merge_stderr=True,
                description='Python compilation'
            )
        except ToolchainTimeoutError as e:
            return CompilationResult.failure(str(e))

        if result.returncode != 0:
            return CompilationResult.failure(self.diagnostic(result, 'py_compile'))

        logger.debug(f"Python compilation succeeded for: {source_path}")
        return CompilationResult.ok()

    def generate_assembly(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        result = run_process(
            [self.executable(request), '-c', DISASSEMBLE_SCRIPT, str(source_path)],
            cwd=str(source_path.parent),
            timeout_seconds=timeout_seconds,
            merge_stderr=True,
            description='Python bytecode disassembly'
        )
        if result.returncode != 0:
            raise CompileFailedError("Failed to disassemble Python bytecode", result.stdout)
        return result.stdout

    def execute(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        result = run_process(
            [self.executable(request), str(source_path)],
            cwd=str(source_path.parent),
            timeout_seconds=timeout_seconds,
            merge_stderr=True,
            description='Python execution'
        )
        self.log_exit_code(result)
        return result.stdout

    def cleanup(self, source_path: Optional[Path]) -> None:
        if source_path is None:
            return
        remove_tree(source_path.parent / '__pycache__')
        self.remove_artifacts([source_path])
        logger.debug(f"Cleaned up Python files: {source_path}")
