"""
Runtime settings for the compilation engine, read from the environment
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BACKEND_DIR = Path(__file__).resolve().parent.parent

# Subprocess limits
TIMEOUT_SECONDS = int(os.getenv('COMPILER_TIMEOUT_SECONDS', '20'))
ENV_SETUP_TIMEOUT_SECONDS = int(os.getenv('ENV_SETUP_TIMEOUT_SECONDS', '10'))

# Request limits (enforced by the HTTP layer)
MAX_CODE_SIZE = int(os.getenv('MAX_CODE_SIZE', '100000'))
MAX_OPTIONS_LENGTH = int(os.getenv('MAX_OPTIONS_LENGTH', '500'))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv('CORS_ORIGINS', '*').split(',')
    if origin.strip()
]

COMPILER_CONFIG_PATH = os.getenv(
    'COMPILER_CONFIG_PATH',
    str(BACKEND_DIR / 'config' / 'compiler-config.json')
)

# Parent directory for the instance workspace (None = system temp dir)
WORKSPACE_ROOT = os.getenv('WORKSPACE_ROOT') or None

# MSVC discovery
VCVARS_PATH = os.getenv('VCVARS_PATH', '')
VSWHERE_PATH = os.getenv(
    'VSWHERE_PATH',
    r'C:\Program Files (x86)\Microsoft Visual Studio\Installer\vswhere.exe'
)
MSVC_PATHS = [p.strip() for p in os.getenv('MSVC_PATHS', '').split(',') if p.strip()]

PORT = int(os.getenv('PORT', '8080'))
