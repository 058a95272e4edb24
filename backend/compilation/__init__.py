"""
Compilation engine: turns source snippets into assembly listings or program output
"""

from .config import CompilerConfigService, CompilerInfo, LanguageConfig
from .dispatcher import CompilerDispatcher
from .models import CompilationRequest, CompilationResponse, CompilationResult
from .plugins import default_plugins
from .registry import PluginRegistry
from .workspace import InstanceWorkspace

__all__ = [
    'CompilerConfigService', 'CompilerInfo', 'LanguageConfig',
    'CompilerDispatcher', 'CompilationRequest', 'CompilationResponse',
    'CompilationResult', 'PluginRegistry', 'InstanceWorkspace', 'default_plugins',
]
