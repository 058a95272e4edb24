"""
Plugin registry: language id (plus optional compiler id) -> plugin
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .errors import UnsupportedLanguageError
from .plugins.base import CompilerPlugin

logger = logging.getLogger(__name__)


class PluginRegistry:
    """
    Immutable lookup table built once at startup

    A language may have several plugins (cpp: GNU and MSVC); the first one
    registered is its primary plugin.
    """

    def __init__(self, plugins: Iterable[CompilerPlugin]):
        table: Dict[str, List[CompilerPlugin]] = {}
        for plugin in plugins:
            table.setdefault(plugin.language.lower(), []).append(plugin)
            logger.info(
                f"Registered compiler plugin for language: {plugin.language} "
                f"(compilers: {', '.join(plugin.supported_compilers)})"
            )
        self._plugins: Dict[str, Tuple[CompilerPlugin, ...]] = {
            language: tuple(entries) for language, entries in table.items()
        }

    def get_plugin(self, language: str, compiler_id: Optional[str] = None) -> CompilerPlugin:
        """
        Find the plugin for a language

        Args:
            language: Language id, matched case-insensitively
            compiler_id: Optional compiler id used to pick between flavors

        Raises:
            UnsupportedLanguageError: If no plugin handles the language
        """
        candidates = self._plugins.get((language or '').lower())
        if not candidates:
            raise UnsupportedLanguageError(language, self._plugins.keys())

        if compiler_id:
            wanted = compiler_id.lower()
            for plugin in candidates:
                if wanted in plugin.supported_compilers:
                    return plugin
            logger.debug(
                f"No {language} plugin claims compiler {compiler_id}; "
                f"using primary plugin {type(candidates[0]).__name__}"
            )
        return candidates[0]

    def is_supported(self, language: Optional[str]) -> bool:
        return bool(language) and language.lower() in self._plugins

    def get_supported_languages(self) -> FrozenSet[str]:
        return frozenset(self._plugins)

    def get_supported_compilers(self, language: str) -> List[str]:
        compilers: List[str] = []
        for plugin in self._plugins.get((language or '').lower(), ()):
            compilers.extend(c for c in plugin.supported_compilers if c not in compilers)
        return compilers
