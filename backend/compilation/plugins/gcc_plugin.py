"""
GNU-style native compilers (g++, gcc)
"""

import logging
import re
import uuid
from pathlib import Path
from typing import Optional

from ..errors import CompileFailedError, ToolchainTimeoutError
from ..invoker import run_process
from ..models import CompilationRequest, CompilationResult
from .base import CompilerPlugin

logger = logging.getLogger(__name__)

# .file "/tmp/.../x.cpp"  or  .file 1 "/tmp/.../x.cpp"
FILE_DIRECTIVE = re.compile(r'^(\s*\.file\s+(?:\d+\s+)?)"([^"]*)"(.*)$')
LEADING_DIRS = re.compile(r'^.*[\\/]')


def sanitize_gnu_assembly(assembly: str) -> str:
    """Collapse .file paths to bare names and drop the .ident banner"""
    lines = []
    for line in assembly.splitlines():
        if line.strip().startswith('.ident'):
            continue
        match = FILE_DIRECTIVE.match(line)
        if match:
            line = f'{match.group(1)}"{LEADING_DIRS.sub("", match.group(2))}"{match.group(3)}'
        lines.append(line)
    return '\n'.join(lines) + '\n' if lines else ''


class GccPlugin(CompilerPlugin):
    """g++/gcc: assembly goes to stdout with -S -o -"""

    supported_compilers = ('gcc', 'g++', 'clang', 'clang++')
    default_options = ('-O0', '-O1', '-O2', '-O3')

    def __init__(self, language: str = 'cpp', extension: str = '.cpp', default_executable: str = 'g++'):
        self.language = language
        self.extension = extension
        self.default_executable = default_executable

    def create_source_file(self, code: str, work_dir: Path) -> Path:
        return self.write_source(work_dir, f"{uuid.uuid4()}{self.extension}", code)

    def compile(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> CompilationResult:
        command = [
            self.executable(request), str(source_path),
            '-o', f"{source_path}.exe",
            *request.option_tokens()
        ]
        try:
            result = run_process(
                command,
                cwd=str(source_path.parent),
                timeout_seconds=timeout_seconds,
                description=f"{self.language} compilation"
            )
        except ToolchainTimeoutError as e:
            return CompilationResult.failure(str(e))

        if result.returncode != 0:
            return CompilationResult.failure(self.diagnostic(result, command[0]))

        logger.debug(f"GCC compilation succeeded: {source_path}")
        return CompilationResult.ok()

    def generate_assembly(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        command = [
            self.executable(request), '-S', '-o', '-',
            *request.option_tokens(),
            str(source_path)
        ]
        result = run_process(
            command,
            cwd=str(source_path.parent),
            timeout_seconds=timeout_seconds,
            description='Assembly generation'
        )
        if result.returncode != 0:
            raise CompileFailedError("Failed to generate assembly output", self.diagnostic(result, command[0]))
        return sanitize_gnu_assembly(result.stdout)

    def execute(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        exe_path = source_path.with_suffix('.exe')
        build = run_process(
            [self.executable(request), str(source_path), '-o', str(exe_path), *request.option_tokens()],
            cwd=str(source_path.parent),
            timeout_seconds=timeout_seconds,
            description=f"{self.language} executable compilation"
        )
        self.check_built(build, self.executable(request))

        result = run_process(
            [str(exe_path)],
            cwd=str(source_path.parent),
            timeout_seconds=timeout_seconds,
            merge_stderr=True,
            description=f"{self.language} execution"
        )
        self.log_exit_code(result)
        return result.stdout

    def cleanup(self, source_path: Optional[Path]) -> None:
        if source_path is None:
            return
        self.remove_artifacts([
            source_path,
            Path(f"{source_path}.exe"),
            source_path.with_suffix('.exe'),
            source_path.with_suffix('.o'),
            source_path.with_suffix('.s'),
        ])
        logger.debug(f"Cleaned up {self.language} files: {source_path}")
