"""
Ephemeral command runner for ruster-env.

Runs a child process with the env file's variables layered over the current
environment. The calling process's own environment is never modified.

Example:
    document = parse_env_file(".env")
    exit_code = run_command(["python", "manage.py", "runserver"], document)
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Iterable, Mapping, Sequence

from .parser import EnvVar

EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


def build_child_environment(
    variables: Iterable[EnvVar],
    environ: Mapping[str, str] | None = None,
    no_overwrite: bool = False,
) -> dict[str, str]:
    """
    Build the environment for a child process.

    Args:
        variables: Parsed variables, applied in order
        environ: Base environment; defaults to the process environment
        no_overwrite: Keep the base value for keys that already exist

    Returns:
        A new dictionary; neither input is modified
    """
    base = os.environ if environ is None else environ
    child_env = dict(base)

    for var in variables:
        if no_overwrite and var.key in base:
            continue
        child_env[var.key] = var.value

    return child_env


def run_command(
    command: Sequence[str],
    variables: Iterable[EnvVar],
    no_overwrite: bool = False,
    environ: Mapping[str, str] | None = None,
    cwd: str | None = None,
) -> int:
    """
    Run a command with the variables overlaid on its environment.

    Standard streams are inherited from the caller.

    Returns:
        The child's exit code

    Raises:
        RunError: If no command was given or it could not be started
    """
    if not command:
        raise RunError("No command given to run")

    child_env = build_child_environment(variables, environ, no_overwrite)

    try:
        completed = subprocess.run(list(command), env=child_env, cwd=cwd, check=False)
    except FileNotFoundError as exc:
        raise RunError(f"Command not found: {command[0]}", exit_code=EXIT_NOT_FOUND) from exc
    except PermissionError as exc:
        raise RunError(
            f"Permission denied running: {command[0]}", exit_code=EXIT_NOT_EXECUTABLE
        ) from exc
    except OSError as exc:
        raise RunError(f"Failed to start {command[0]}: {exc}") from exc

    return completed.returncode


class RunError(Exception):
    """Exception raised when a command cannot be started."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)
