"""
Static compiler configuration: available languages and their compilers
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ValidationError

from .errors import ConfigurationError
from .settings import COMPILER_CONFIG_PATH

logger = logging.getLogger(__name__)

# ${NAME} or ${NAME:default}
PLACEHOLDER_PATTERN = re.compile(r'\$\{([^}:]+)(?::([^}]*))?\}')


class CompilerInfo(BaseModel):
    id: str
    name: str
    path: Optional[str] = None
    version: Optional[str] = None
    isDefault: bool = False
    defaultArgs: Optional[str] = None
    metadata: Dict[str, str] = {}


class LanguageConfig(BaseModel):
    id: str
    name: str
    fileExtension: str
    allowCustomArgs: bool = True
    defaultCodePath: Optional[str] = None
    defaultCode: Optional[str] = None  # Populated from defaultCodePath
    editorLanguage: Optional[str] = None
    compilers: List[CompilerInfo] = []

    def get_compiler_by_id(self, compiler_id: str) -> Optional[CompilerInfo]:
        for compiler in self.compilers:
            if compiler.id == compiler_id:
                return compiler
        return None

    def get_default_compiler(self) -> Optional[CompilerInfo]:
        for compiler in self.compilers:
            if compiler.isDefault:
                return compiler
        return self.compilers[0] if self.compilers else None


class CompilerConfigModel(BaseModel):
    languages: List[LanguageConfig] = []


def resolve_placeholders(value: Optional[str], environ: Mapping[str, str]) -> Optional[str]:
    """
    Replace ${NAME} / ${NAME:default} placeholders with environment values

    Args:
        value: String that may contain placeholders
        environ: Mapping used to resolve placeholder names

    Returns:
        The resolved string; unresolved names without a default become ''
    """
    if not value or '${' not in value:
        return value

    def _replace(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        resolved = environ.get(name)
        if resolved is None:
            if default is not None:
                return default
            logger.warning(f"Placeholder not found in environment: ${{{name}}}")
            return ''
        return resolved

    return PLACEHOLDER_PATTERN.sub(_replace, value)


class CompilerConfigService:
    """Loads compiler-config.json once at startup and serves lookups"""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        self.config_path = Path(config_path or COMPILER_CONFIG_PATH)
        self.environ = environ if environ is not None else os.environ
        self._config: Optional[CompilerConfigModel] = None

    def load(self) -> CompilerConfigModel:
        try:
            raw = json.loads(self.config_path.read_text(encoding='utf-8'))
            config = CompilerConfigModel.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to load compiler configuration from {self.config_path}: {e}")
            raise ConfigurationError(f"Failed to load compiler configuration: {e}") from e

        self._load_default_code(config)
        self._resolve_placeholders(config)
        self._config = config

        logger.info(f"Loaded compiler configuration with {len(config.languages)} languages")
        return config

    def _load_default_code(self, config: CompilerConfigModel) -> None:
        for language in config.languages:
            if not language.defaultCodePath:
                continue
            code_path = self.config_path.parent / language.defaultCodePath
            try:
                language.defaultCode = code_path.read_text(encoding='utf-8')
                logger.debug(f"Loaded default code for {language.id}: {code_path}")
            except OSError as e:
                logger.warning(f"Failed to load default code from {code_path}: {e}")
                language.defaultCode = ''

    def _resolve_placeholders(self, config: CompilerConfigModel) -> None:
        for language in config.languages:
            for compiler in language.compilers:
                resolved = resolve_placeholders(compiler.path, self.environ)
                if resolved != compiler.path:
                    logger.debug(f"Resolved compiler path for {compiler.id}: {compiler.path} -> {resolved}")
                    compiler.path = resolved
                compiler.metadata = {
                    key: resolve_placeholders(value, self.environ) or ''
                    for key, value in compiler.metadata.items()
                }

    @property
    def config(self) -> CompilerConfigModel:
        if self._config is None:
            self.load()
        return self._config

    def language_ids(self) -> List[str]:
        return [language.id for language in self.config.languages]

    def get_language_config(self, language_id: str) -> Optional[LanguageConfig]:
        if not language_id:
            return None
        wanted = language_id.lower()
        for language in self.config.languages:
            if language.id.lower() == wanted:
                return language
        return None
