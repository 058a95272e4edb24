"""
Java: javac to class files, javap for the bytecode listing
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from ..errors import CompileFailedError, NamingError, ToolchainTimeoutError
from ..invoker import run_process
from ..models import CompilationRequest, CompilationResult
from .base import CompilerPlugin, sibling_tool

logger = logging.getLogger(__name__)

# The file must be named after its public top-level type
PUBLIC_TYPE_PATTERN = re.compile(
    r'public\s+(?:(?:final|abstract|sealed|strictfp)\s+)*(?:class|interface|enum|record)\s+(\w+)'
)


def extract_class_name(code: str) -> Optional[str]:
    match = PUBLIC_TYPE_PATTERN.search(code)
    return match.group(1) if match else None


class JavaPlugin(CompilerPlugin):
    """javac/javap/java, all run from the request workspace"""

    language = 'java'
    supported_compilers = ('javac',)
    default_options = ('-g', '-nowarn')
    default_executable = 'javac'

    def _class_files(self, class_dir: Path) -> List[Path]:
        return sorted(class_dir.glob('*.class'))

    def create_source_file(self, code: str, work_dir: Path) -> Path:
        class_name = extract_class_name(code)
        if class_name is None:
            raise NamingError("Could not find class name in Java code")
        return self.write_source(work_dir, f"{class_name}.java", code)

    def compile(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> CompilationResult:
        command = [
            self.executable(request),
            '-d', str(source_path.parent),
            *request.option_tokens(),
            str(source_path)
        ]
        try:
            result = run_process(
                command,
                cwd=str(source_path.parent),
                timeout_seconds=timeout_seconds,
                merge_stderr=True,
                description='Java compilation'
            )
        except ToolchainTimeoutError as e:
            return CompilationResult.failure(str(e))

        if result.returncode != 0:
            return CompilationResult.failure(self.diagnostic(result, 'javac'))

        logger.debug(f"Java compilation succeeded for: {source_path}")
        return CompilationResult.ok()

    def generate_assembly(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        class_dir = source_path.parent
        class_files = self._class_files(class_dir)
        if not class_files:
            raise CompileFailedError("No .class files found after compilation")

        javap = sibling_tool(request.compiler_path, 'javap', 'javap')
        output = []
        for class_file in class_files:
            class_name = class_file.stem
            result = run_process(
                [javap, '-c', '-p', class_name],
                cwd=str(class_dir),
                timeout_seconds=timeout_seconds,
                merge_stderr=True,
                description=f"Java bytecode disassembly for {class_name}"
            )
            if result.returncode != 0:
                logger.warning(f"Failed to disassemble class: {class_name}")
            # Blank line between classes
            output.append(result.stdout + '\n')

        return ''.join(output)

    def execute(self, request: CompilationRequest, source_path: Path, timeout_seconds: float) -> str:
        class_name = extract_class_name(request.code)
        if class_name is None:
            raise NamingError("Could not find class name for execution")

        java = sibling_tool(request.compiler_path, 'java', 'java')
        result = run_process(
            [java, '-cp', str(source_path.parent), class_name],
            cwd=str(source_path.parent),
            timeout_seconds=timeout_seconds,
            merge_stderr=True,
            description='Java execution'
        )
        self.log_exit_code(result)
        return result.stdout

    def cleanup(self, source_path: Optional[Path]) -> None:
        if source_path is None:
            return
        class_files = self._class_files(source_path.parent) if source_path.parent.is_dir() else []
        self.remove_artifacts([*class_files, source_path])
        logger.debug(f"Cleaned up Java files: {source_path}")
