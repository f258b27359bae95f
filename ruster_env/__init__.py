"""
ruster-env: Load .env files into PowerShell and Cmd sessions.

The env file is parsed (with ``${NAME}`` interpolation) and turned into
shell code that the calling shell evaluates, so no daemon is needed.

Basic Usage:
    ruster-env load .env
    ruster-env unload .env
    ruster-env run -- python app.py
"""

__version__ = "1.0.0"

from .cli import main  # noqa: E402
from .config import RusterEnvConfig  # noqa: E402
from .parser import EnvFileError, EnvParser, EnvVar, ParsedDocument, parse_env_file  # noqa: E402
from .runner import RunError, build_child_environment, run_command  # noqa: E402
from .shells import Mode, Shell, ShellRegistry, emit  # noqa: E402

__all__ = [
    "main",
    "RusterEnvConfig",
    "EnvFileError",
    "EnvParser",
    "EnvVar",
    "ParsedDocument",
    "parse_env_file",
    "RunError",
    "build_child_environment",
    "run_command",
    "Mode",
    "Shell",
    "ShellRegistry",
    "emit",
]
