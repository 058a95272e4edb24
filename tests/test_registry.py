import logging

import pytest

from compilation.errors import UnsupportedLanguageError
from compilation.plugins import GccPlugin, JavaPlugin, MsvcPlugin, PythonPlugin, default_plugins
from compilation.registry import PluginRegistry


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry(default_plugins())


def test_lookup_is_case_insensitive(registry: PluginRegistry):
    assert isinstance(registry.get_plugin("JAVA"), JavaPlugin)
    assert isinstance(registry.get_plugin("Python"), PythonPlugin)
    assert registry.is_supported("Cpp")
    assert not registry.is_supported(None)


def test_unknown_language_lists_known_ids(registry: PluginRegistry):
    with pytest.raises(UnsupportedLanguageError) as excinfo:
        registry.get_plugin("cobol")
    message = str(excinfo.value)
    assert "unsupported language" in message.lower()
    for language in ("c", "cpp", "java", "python"):
        assert language in message


def test_compiler_id_selects_toolchain_flavor(registry: PluginRegistry):
    assert isinstance(registry.get_plugin("cpp", "msvc"), MsvcPlugin)
    assert isinstance(registry.get_plugin("cpp", "gcc"), GccPlugin)
    # No match falls back to the primary plugin
    assert isinstance(registry.get_plugin("cpp", "unknown"), GccPlugin)
    assert isinstance(registry.get_plugin("cpp"), GccPlugin)


def test_c_uses_gcc_driver(registry: PluginRegistry):
    plugin = registry.get_plugin("c")
    assert isinstance(plugin, GccPlugin)
    assert plugin.extension == ".c"
    assert plugin.default_executable == "gcc"


def test_supported_languages_and_compilers(registry: PluginRegistry):
    assert registry.get_supported_languages() == {"c", "cpp", "java", "python"}
    compilers = registry.get_supported_compilers("cpp")
    assert "g++" in compilers and "cl" in compilers
    assert registry.get_supported_compilers("rust") == []


def test_unclaimed_compiler_fallback_is_logged(registry: PluginRegistry, caplog):
    caplog.set_level(logging.DEBUG, logger="compilation.registry")
    assert isinstance(registry.get_plugin("cpp", "icc"), GccPlugin)
    assert "icc" in caplog.text
    assert "GccPlugin" in caplog.text

    caplog.clear()
    registry.get_plugin("cpp", "msvc")
    assert "primary plugin" not in caplog.text
