"""
Toolchain plugins
"""

from typing import List

from .base import CompilerPlugin
from .gcc_plugin import GccPlugin
from .java_plugin import JavaPlugin
from .msvc_plugin import MsvcPlugin
from .python_plugin import PythonPlugin


def default_plugins(config_service=None) -> List[CompilerPlugin]:
    """
    Build the plugin set served by this backend

    The GNU plugin is listed before MSVC so it is the primary C++ plugin.
    """
    return [
        GccPlugin('cpp', '.cpp', 'g++'),
        MsvcPlugin(config_service=config_service),
        GccPlugin('c', '.c', 'gcc'),
        JavaPlugin(),
        PythonPlugin(),
    ]


__all__ = [
    'CompilerPlugin', 'GccPlugin', 'MsvcPlugin', 'JavaPlugin', 'PythonPlugin',
    'default_plugins',
]
