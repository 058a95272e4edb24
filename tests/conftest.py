import json
import sys
from pathlib import Path
from typing import Iterator

import pytest

from compilation.config import CompilerConfigService
from compilation.models import CompilationRequest
from compilation.workspace import InstanceWorkspace


def make_request(language: str = "python", compiler_id: str = "python3", code: str = "print(42)\n",
                 options: str = None) -> CompilationRequest:
    """Build a validated request the way the HTTP layer would."""
    return CompilationRequest(language=language, compilerId=compiler_id, code=code, compilerOptions=options)


@pytest.fixture
def instance_workspace(tmp_path: Path) -> Iterator[InstanceWorkspace]:
    """Instance workspace rooted in the test's tmp_path."""
    workspace = InstanceWorkspace(root=str(tmp_path))
    yield workspace
    workspace.close()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A small compiler-config.json with a default template and placeholder paths."""
    config_dir = tmp_path / "config"
    (config_dir / "templates").mkdir(parents=True)
    (config_dir / "templates" / "main.py").write_text("print('hello')\n")
    config = {
        "languages": [
            {
                "id": "python",
                "name": "Python",
                "fileExtension": ".py",
                "allowCustomArgs": False,
                "defaultCodePath": "templates/main.py",
                "compilers": [
                    {"id": "python3", "name": "CPython", "path": "${TEST_PYTHON}", "isDefault": True}
                ],
            },
            {
                "id": "cpp",
                "name": "C++",
                "fileExtension": ".cpp",
                "defaultCodePath": "templates/missing.cpp",
                "compilers": [
                    {"id": "gcc", "name": "GCC", "path": "${TEST_GXX:g++}", "isDefault": True},
                    {"id": "msvc", "name": "MSVC", "path": "cl",
                     "metadata": {"vcvarsPath": "${TEST_VCVARS:}"}},
                ],
            },
            {
                "id": "java",
                "name": "Java",
                "fileExtension": ".java",
                "compilers": [{"id": "javac", "name": "javac", "path": "javac"}],
            },
        ]
    }
    path = config_dir / "compiler-config.json"
    path.write_text(json.dumps(config))
    return path


@pytest.fixture
def config_service(config_file: Path) -> CompilerConfigService:
    service = CompilerConfigService(str(config_file), environ={"TEST_PYTHON": sys.executable})
    service.load()
    return service
