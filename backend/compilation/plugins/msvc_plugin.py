"""
Microsoft cl.exe, which needs the vcvars64.bat environment before it runs
"""

import logging
import os
import re
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from ..config import CompilerConfigService, CompilerInfo
from ..errors import CompileFailedError, ToolchainTimeoutError
from ..invoker import run_process
from ..models import CompilationRequest, CompilationResult
from ..msvc_env import MsvcEnvironmentResolver
from ..workspace import read_text, remove_file
from .base import CompilerPlugin

logger = logging.getLogger(__name__)

LEADING_DIRS = re.compile(r'^.*[\\/]')


def sanitize_msvc_assembly(assembly: str) -> str:
    """
    Strip listing noise from a /FAs listing

    Drops include/INCLUDELIB directives and the generator banner, collapses
    '; File <path>' to the bare file name and trims leading blank lines.
    """
    if not assembly:
        return assembly

    sanitized = []
    in_code = False
    for line in assembly.splitlines():
        trimmed = line.strip()
        if trimmed.startswith(('include ', 'INCLUDE ', 'INCLUDELIB ')):
            continue
        if trimmed.startswith('; Listing generated by'):
            continue
        if trimmed.startswith('; File '):
            sanitized.append(f"; File {LEADING_DIRS.sub('', trimmed[6:].strip())}")
            continue
        if not in_code and not trimmed:
            continue
        if trimmed:
            in_code = True
        sanitized.append(line)

    return '\n'.join(sanitized) + '\n' if sanitized else ''


class MsvcPlugin(CompilerPlugin):
    """cl.exe: assembly is written to a listing file we read back"""

    language = 'cpp'
    supported_compilers = ('msvc', 'cl')
    default_options = ('/EHsc', '/Od', '/O1', '/O2')
    default_executable = 'cl'

    def __init__(
        self,
        config_service: Optional[CompilerConfigService] = None,
        resolver: Optional[MsvcEnvironmentResolver] = None
    ):
        self.config_service = config_service
        self.resolver = resolver or MsvcEnvironmentResolver()

    def _compiler_info(self, request: CompilationRequest) -> Optional[CompilerInfo]:
        if self.config_service is None:
            return None
        language = self.config_service.get_language_config(request.language)
        return language.get_compiler_by_id(request.compilerId) if language else None

    def _environment(self, request: CompilationRequest) -> Optional[Dict[str, str]]:
        # Resolved on every invocation
        return self.resolver.resolve(self._compiler_info(request))

    def _command(self, request: CompilationRequest, *args: str) -> List[str]:
        # cmd /c lets the overlaid PATH find cl.exe
        prefix = ['cmd', '/c'] if os.name == 'nt' else []
        return [*prefix, self.executable(request), '/nologo', *args]

    def create_source_file(self, code: str, work_dir: Path) -> Path:
        return self.write_source(work_dir, f"{uuid.uuid4()}.cpp", code)

    def compile(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> CompilationResult:
        command = self._command(
            request, '/EHsc', str(source_path), f"/Fe:{source_path}.exe",
            *request.option_tokens()
        )
        env = self._environment(request)
        try:
            # cl writes diagnostics to stdout
            result = run_process(
                command,
                cwd=str(source_path.parent),
                env=env,
                timeout_seconds=timeout_seconds,
                merge_stderr=True,
                description='C++ compilation'
            )
        except ToolchainTimeoutError as e:
            return CompilationResult.failure(str(e))

        if result.returncode != 0:
            return CompilationResult.failure(self.diagnostic(result, 'cl'))

        logger.debug(f"MSVC compilation succeeded: {source_path}")
        return CompilationResult.ok()

    def generate_assembly(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        asm_path = Path(f"{source_path}.asm")
        command = self._command(
            request, '/c', '/FAs', f"/Fa{asm_path}",
            *request.option_tokens(),
            str(source_path)
        )
        result = run_process(
            command,
            cwd=str(source_path.parent),
            env=self._environment(request),
            timeout_seconds=timeout_seconds,
            merge_stderr=True,
            description='Assembly generation'
        )
        if result.returncode != 0:
            remove_file(asm_path)
            raise CompileFailedError("Failed to generate assembly output", self.diagnostic(result, 'cl'))
        if not asm_path.exists():
            raise CompileFailedError("Assembly file not generated by MSVC", result.stdout)

        listing = read_text(asm_path)
        remove_file(asm_path)
        return sanitize_msvc_assembly(listing)

    def execute(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        exe_path = source_path.with_suffix('.exe')
        build = run_process(
            self._command(request, '/EHsc', str(source_path), f"/Fe{exe_path}", *request.option_tokens()),
            cwd=str(source_path.parent),
            env=self._environment(request),
            timeout_seconds=timeout_seconds,
            merge_stderr=True,
            description='C++ executable compilation'
        )
        self.check_built(build, 'cl')

        result = run_process(
            [str(exe_path)],
            cwd=str(source_path.parent),
            timeout_seconds=timeout_seconds,
            merge_stderr=True,
            description='C++ execution'
        )
        self.log_exit_code(result)
        return result.stdout

    def cleanup(self, source_path: Optional[Path]) -> None:
        if source_path is None:
            return
        self.remove_artifacts([
            source_path,
            Path(f"{source_path}.exe"),
            Path(f"{source_path}.obj"),
            Path(f"{source_path}.asm"),
            source_path.with_suffix('.exe'),
            source_path.with_suffix('.obj'),
        ])
        logger.debug(f"Cleaned up MSVC files: {source_path}")
