"""
Pydantic models for compilation requests and results
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from .settings import MAX_CODE_SIZE, MAX_OPTIONS_LENGTH

# Alphanumerics, whitespace, '-', '/', ':' and '.'
OPTIONS_PATTERN = r'^[a-zA-Z0-9\s\-/:.]*$'


class Operation(str, Enum):
    ASSEMBLY = "assembly"
    EXECUTE = "execute"


class CompilationRequest(BaseModel):
    """Request to compile a snippet and return its assembly or its output"""
    language: str = Field(..., min_length=1)
    compilerId: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, max_length=MAX_CODE_SIZE)
    compilerOptions: Optional[str] = Field(
        default=None,
        max_length=MAX_OPTIONS_LENGTH,
        pattern=OPTIONS_PATTERN
    )

    # Filled in by the dispatcher after the compiler id is validated
    _compiler_path: Optional[str] = PrivateAttr(default=None)

    @field_validator('language', 'compilerId', 'code')
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('must not be blank')
        return value

    @property
    def compiler_path(self) -> Optional[str]:
        return self._compiler_path

    def resolve_compiler_path(self, path: Optional[str]) -> None:
        """
        Record the executable configured for this request's compiler

        Args:
            path: Placeholder-resolved executable path from the configuration

        Raises:
            ValueError: If a different path was already recorded
        """
        if self._compiler_path is not None and self._compiler_path != path:
            raise ValueError(
                f"Compiler path already resolved to {self._compiler_path}"
            )
        self._compiler_path = path or None

    def option_tokens(self) -> List[str]:
        """Split the user options on whitespace, one argument per token"""
        if not self.compilerOptions:
            return []
        return self.compilerOptions.split()


class CompilationResult(BaseModel):
    """Outcome of the compile phase"""
    model_config = ConfigDict(frozen=True)

    success: bool
    errorOutput: Optional[str] = None

    @classmethod
    def ok(cls) -> 'CompilationResult':
        return cls(success=True)

    @classmethod
    def failure(cls, error_output: str) -> 'CompilationResult':
        return cls(success=False, errorOutput=error_output)


class CompilationResponse(BaseModel):
    """Response returned for both assembly and execution requests"""
    assemblyOutput: Optional[str] = None
    executionOutput: Optional[str] = None
    error: Optional[str] = None
    success: bool

    @classmethod
    def for_assembly(cls, output: str) -> 'CompilationResponse':
        return cls(success=True, assemblyOutput=output)

    @classmethod
    def for_execution(cls, output: str) -> 'CompilationResponse':
        return cls(success=True, executionOutput=output)

    @classmethod
    def failure(cls, error: Optional[str]) -> 'CompilationResponse':
        return cls(success=False, error=error or 'Compilation failed')
