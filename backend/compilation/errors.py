"""
Exception hierarchy for the compilation engine

Every error raised inside a request is a CompilationError subclass; the
dispatcher turns them into failed responses.
"""

from typing import Iterable, Optional


class CompilationError(Exception):
    """Base class for all compilation engine errors"""


class UnsupportedLanguageError(CompilationError):
    def __init__(self, language: str, supported: Iterable[str]):
        self.language = language
        self.supported = sorted(supported)
        super().__init__(
            f"Unsupported language: {language}. "
            f"Supported languages: {', '.join(self.supported)}"
        )


class InvalidCompilerError(CompilationError):
    def __init__(self, compiler_id: str, language: str, available: Iterable[str] = ()):
        self.compiler_id = compiler_id
        self.language = language
        self.available = list(available)
        message = f"Invalid compiler '{compiler_id}' for language {language}"
        if self.available:
            message += f". Available compilers: {', '.join(self.available)}"
        super().__init__(message)


class NamingError(CompilationError):
    """A required type/file name could not be derived from the source text"""


class CompileFailedError(CompilationError):
    """The toolchain exited nonzero"""

    def __init__(self, message: str, diagnostic: str = ''):
        self.diagnostic = diagnostic
        super().__init__(f"{message}: {diagnostic}" if diagnostic else message)


class ToolchainTimeoutError(CompilationError):
    def __init__(self, description: str, timeout_seconds: float, pid: Optional[int] = None):
        self.description = description
        self.timeout_seconds = timeout_seconds
        self.pid = pid
        super().__init__(f"{description} timed out after {timeout_seconds:g} seconds")


class ToolchainUnavailableError(CompilationError):
    """No usable executable was found on the host"""


class EnvironmentSetupError(CompilationError):
    """The vendor environment script could not be executed"""


class WorkspaceError(CompilationError):
    """Workspace creation, file write or file read failed"""


class ConfigurationError(CompilationError):
    """The static compiler configuration could not be loaded"""
