"""
MSVC environment discovery

cl.exe only works after vcvars64.bat has set INCLUDE, LIB and PATH. We find
the script, run it through a throwaway wrapper that dumps the resulting
environment, and hand that mapping to the compiler invocation.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from .config import CompilerInfo
from .errors import CompilationError, EnvironmentSetupError
from .invoker import run_process
from .settings import ENV_SETUP_TIMEOUT_SECONDS, MSVC_PATHS, VCVARS_PATH, VSWHERE_PATH
from .workspace import remove_file, write_text

logger = logging.getLogger(__name__)

VCVARS_NAME = 'vcvars64.bat'
VC_TOOLS_COMPONENT = 'Microsoft.VisualStudio.Component.VC.Tools.x86.x64'
# cl.exe sits at VC/Tools/MSVC/<ver>/bin/Hostx64/x64, vcvars at VC/Auxiliary/Build
MAX_PARENT_LEVELS = 8


def parse_environment_dump(text: str) -> Dict[str, str]:
    """
    Parse `set`-style KEY=VALUE lines into a mapping

    Only the first '=' separates key from value. Lines without '=' and
    cmd.exe's hidden '=C:' style entries are skipped.
    """
    env: Dict[str, str] = {}
    for line in text.splitlines():
        if '=' not in line:
            continue
        key, value = line.split('=', 1)
        key = key.strip()
        if key:
            env[key] = value.rstrip('\r')
    return env


def find_vcvars_above(start: str, max_levels: int = MAX_PARENT_LEVELS) -> Optional[str]:
    """Walk up from a cl.exe location looking for Auxiliary/Build/vcvars64.bat"""
    current = os.path.dirname(os.path.abspath(start))
    for _ in range(max_levels):
        candidate = os.path.join(current, 'Auxiliary', 'Build', VCVARS_NAME)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


class MsvcEnvironmentResolver:
    """Locates vcvars64.bat and captures the environment it produces"""

    def __init__(
        self,
        vcvars_path: Optional[str] = None,
        msvc_paths: Optional[Iterable[str]] = None,
        vswhere_path: Optional[str] = None,
        timeout_seconds: float = ENV_SETUP_TIMEOUT_SECONDS,
        which: Callable[[str], Optional[str]] = shutil.which,
        environ: Optional[Dict[str, str]] = None
    ):
        self.vcvars_path = vcvars_path if vcvars_path is not None else VCVARS_PATH
        self.msvc_paths = list(msvc_paths) if msvc_paths is not None else list(MSVC_PATHS)
        self.vswhere_path = vswhere_path if vswhere_path is not None else VSWHERE_PATH
        self.timeout_seconds = timeout_seconds
        self.which = which
        self.environ = environ if environ is not None else os.environ

    # ---------- discovery ----------

    def _from_config(self, compiler: Optional[CompilerInfo]) -> Optional[str]:
        if self.vcvars_path and os.path.isfile(self.vcvars_path):
            return self.vcvars_path
        for cl_path in self.msvc_paths:
            if os.path.isfile(cl_path):
                found = find_vcvars_above(cl_path)
                if found:
                    return found
        return None

    def _from_metadata(self, compiler: Optional[CompilerInfo]) -> Optional[str]:
        if compiler is None:
            return None
        vcvars = compiler.metadata.get('vcvarsPath', '')
        if vcvars and os.path.isfile(vcvars):
            return vcvars
        for cl_path in compiler.metadata.get('msvcPaths', '').split(','):
            cl_path = cl_path.strip()
            if cl_path and os.path.isfile(cl_path):
                found = find_vcvars_above(cl_path)
                if found:
                    return found
        if compiler.path and os.path.isabs(compiler.path) and os.path.isfile(compiler.path):
            return find_vcvars_above(compiler.path)
        return None

    def _from_environment(self, compiler: Optional[CompilerInfo]) -> Optional[str]:
        # VCVARS_PATH is read once by settings and handled by _from_config
        value = self.environ.get('VCVARS64_PATH')
        if value and os.path.isfile(value):
            return value
        return None

    def _from_path_lookup(self, compiler: Optional[CompilerInfo]) -> Optional[str]:
        cl_path = self.which('cl')
        if cl_path:
            return find_vcvars_above(cl_path)
        return None

    def _from_vswhere(self, compiler: Optional[CompilerInfo]) -> Optional[str]:
        vswhere = self.vswhere_path if os.path.isfile(self.vswhere_path or '') else self.which('vswhere')
        if not vswhere:
            return None
        try:
            result = run_process(
                [vswhere, '-latest', '-products', '*',
                 '-requires', VC_TOOLS_COMPONENT,
                 '-property', 'installationPath'],
                timeout_seconds=self.timeout_seconds,
                description='vswhere'
            )
        except CompilationError as e:
            logger.debug(f"vswhere check failed: {e}")
            return None
        lines = result.stdout.strip().splitlines()
        if result.returncode != 0 or not lines:
            return None
        candidate = os.path.join(lines[0].strip(), 'VC', 'Auxiliary', 'Build', VCVARS_NAME)
        return candidate if os.path.isfile(candidate) else None

    def find_vcvars(self, compiler: Optional[CompilerInfo] = None) -> Optional[str]:
        """
        Try each discovery strategy in turn

        Every strategy takes the compiler entry so they can be tried in one
        loop; only _from_metadata reads it.

        Args:
            compiler: Configured compiler entry whose metadata may name the script

        Returns:
            Path to vcvars64.bat, or None if no strategy found it
        """
        strategies = (
            self._from_config,
            self._from_metadata,
            self._from_environment,
            self._from_path_lookup,
            self._from_vswhere,
        )
        for strategy in strategies:
            found = strategy(compiler)
            if found:
                logger.debug(f"Found {VCVARS_NAME} via {strategy.__name__}: {found}")
                return found
        return None

    # ---------- capture ----------

    def capture_environment(self, vcvars_path: str) -> Dict[str, str]:
        """
        Run vcvars64.bat and return the environment it leaves behind

        Raises:
            EnvironmentSetupError: If the wrapper fails or produces nothing
        """
        logger.debug(f"Setting up MSVC environment using {vcvars_path}")
        fd, wrapper_path = tempfile.mkstemp(prefix='vcvars', suffix='.bat')
        os.close(fd)
        try:
            write_text(Path(wrapper_path), f'@echo off\ncall "{vcvars_path}"\nset\n')
            try:
                result = run_process(
                    ['cmd', '/c', wrapper_path],
                    timeout_seconds=self.timeout_seconds,
                    merge_stderr=True,
                    description='MSVC environment setup'
                )
            except CompilationError as e:
                raise EnvironmentSetupError(f"Failed to set up MSVC environment: {e}") from e
        finally:
            remove_file(wrapper_path)

        if result.returncode != 0:
            raise EnvironmentSetupError(
                f"Failed to set up MSVC environment: {VCVARS_NAME} exited with code {result.returncode}"
            )
        env = parse_environment_dump(result.stdout)
        if not env:
            raise EnvironmentSetupError("Failed to set up MSVC environment: no variables captured")
        logger.debug(f"Captured {len(env)} MSVC environment variables")
        return env

    def resolve(self, compiler: Optional[CompilerInfo] = None) -> Optional[Dict[str, str]]:
        """
        Find and run the vendor script

        Returns:
            Environment overlay, or None when no script was found (the
            compiler then runs with the inherited environment and fails
            with its own diagnostic if it needs one)
        """
        vcvars = self.find_vcvars(compiler)
        if not vcvars:
            logger.warning("Could not find Visual Studio installation; using the environment as-is")
            return None
        return self.capture_environment(vcvars)

