import sys
from pathlib import Path

import pytest

from compilation.config import CompilerConfigService, LanguageConfig, resolve_placeholders
from compilation.errors import ConfigurationError


def test_resolve_placeholders():
    env = {"JDK": "/opt/jdk", "EMPTY": ""}
    assert resolve_placeholders("${JDK}/bin/javac", env) == "/opt/jdk/bin/javac"
    assert resolve_placeholders("${MISSING:g++}", env) == "g++"
    assert resolve_placeholders("${MISSING}", env) == ""
    assert resolve_placeholders("${EMPTY:fallback}", env) == ""
    assert resolve_placeholders("plain", env) == "plain"
    assert resolve_placeholders(None, env) is None


def test_load_resolves_paths_and_default_code(config_service: CompilerConfigService):
    python = config_service.get_language_config("python")
    assert python.defaultCode == "print('hello')\n"
    assert python.get_compiler_by_id("python3").path == sys.executable

    cpp = config_service.get_language_config("cpp")
    # Missing template falls back to empty code
    assert cpp.defaultCode == ""
    assert cpp.get_compiler_by_id("gcc").path == "g++"
    assert cpp.get_compiler_by_id("msvc").metadata == {"vcvarsPath": ""}


def test_language_lookup_is_case_insensitive(config_service: CompilerConfigService):
    assert config_service.get_language_config("CPP").id == "cpp"
    assert config_service.get_language_config("rust") is None
    assert config_service.language_ids() == ["python", "cpp", "java"]


def test_default_compiler_selection():
    language = LanguageConfig.model_validate({
        "id": "cpp", "name": "C++", "fileExtension": ".cpp",
        "compilers": [
            {"id": "msvc", "name": "MSVC"},
            {"id": "gcc", "name": "GCC", "isDefault": True},
        ],
    })
    assert language.get_default_compiler().id == "gcc"
    language.compilers[1].isDefault = False
    assert language.get_default_compiler().id == "msvc"
    assert language.get_compiler_by_id("clang") is None


def test_missing_config_file_raises(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        CompilerConfigService(str(tmp_path / "nope.json")).load()


def test_malformed_config_file_raises(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text('{"languages": [{"id": "x"}]}')
    with pytest.raises(ConfigurationError):
        CompilerConfigService(str(path)).load()


def test_bundled_config_loads():
    service = CompilerConfigService(environ={})
    service.load()
    assert set(service.language_ids()) == {"cpp", "c", "java", "python"}
    cpp = service.get_language_config("cpp")
    assert [c.id for c in cpp.compilers] == ["gcc", "msvc"]
    assert cpp.get_compiler_by_id("gcc").path == "g++"
    assert "int main" in cpp.defaultCode
