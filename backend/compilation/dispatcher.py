"""
Compiler dispatcher: routes a request to its plugin inside a private workspace
"""

import logging
from pathlib import Path
from typing import Optional

from .config import CompilerConfigService
from .errors import CompilationError, InvalidCompilerError, UnsupportedLanguageError
from .models import CompilationRequest, CompilationResponse, Operation
from .plugins.base import CompilerPlugin
from .registry import PluginRegistry
from .settings import TIMEOUT_SECONDS
from .workspace import InstanceWorkspace

logger = logging.getLogger(__name__)


class CompilerDispatcher:
    """
    Drives compile -> (assembly | execution) for one request

    Never raises: every failure becomes a CompilationResponse with
    success=False. The request workspace is always deleted.
    """

    def __init__(
        self,
        config_service: CompilerConfigService,
        registry: PluginRegistry,
        workspace: InstanceWorkspace,
        timeout_seconds: float = TIMEOUT_SECONDS
    ):
        self.config_service = config_service
        self.registry = registry
        self.workspace = workspace
        self.timeout_seconds = timeout_seconds

    def compile(self, request: CompilationRequest) -> CompilationResponse:
        """Compile and return the assembly / bytecode listing"""
        return self._dispatch(request, Operation.ASSEMBLY)

    def execute(self, request: CompilationRequest) -> CompilationResponse:
        """Compile and return the program's output"""
        return self._dispatch(request, Operation.EXECUTE)

    def _resolve_plugin(self, request: CompilationRequest) -> CompilerPlugin:
        language = self.config_service.get_language_config(request.language)
        if language is None:
            raise UnsupportedLanguageError(request.language, self.config_service.language_ids())

        compiler = language.get_compiler_by_id(request.compilerId)
        if compiler is None:
            raise InvalidCompilerError(
                request.compilerId, language.id,
                [c.id for c in language.compilers]
            )

        # The only place the executable path is ever set
        request.resolve_compiler_path(compiler.path)
        return self.registry.get_plugin(language.id, compiler.id)

    def _dispatch(self, request: CompilationRequest, operation: Operation) -> CompilationResponse:
        logger.info(f"Received {operation.value} request for {request.language} ({request.compilerId})")
        try:
            plugin = self._resolve_plugin(request)
            with self.workspace.request_workspace() as work_dir:
                return self._run(plugin, request, operation, work_dir)
        except CompilationError as e:
            logger.warning(f"{operation.value} request failed: {e}")
            return CompilationResponse.failure(str(e))
        except Exception as e:
            logger.error(f"Error during compilation: {e}", exc_info=True)
            return CompilationResponse.failure(f"Error during compilation: {e}")

    def _run(
        self,
        plugin: CompilerPlugin,
        request: CompilationRequest,
        operation: Operation,
        work_dir: Path
    ) -> CompilationResponse:
        source_path: Optional[Path] = None
        try:
            source_path = plugin.create_source_file(request.code, work_dir)

            result = plugin.compile(request, source_path, self.timeout_seconds)
            if not result.success:
                return CompilationResponse.failure(result.errorOutput)

            if operation is Operation.ASSEMBLY:
                return CompilationResponse.for_assembly(
                    plugin.generate_assembly(request, source_path, self.timeout_seconds)
                )
            return CompilationResponse.for_execution(
                plugin.execute(request, source_path, self.timeout_seconds)
            )
        finally:
            if source_path is not None:
                self._cleanup(plugin, source_path)

    @staticmethod
    def _cleanup(plugin: CompilerPlugin, source_path: Path) -> None:
        try:
            plugin.cleanup(source_path)
        except Exception as e:
            logger.warning(f"Error cleaning up {source_path}: {e}")
