"""
Shell wrapper generation for ruster-env.

A child process cannot change its parent's environment, so ``load`` and
``unload`` only print code. The wrappers defined here are installed into the
user's shell once and take care of evaluating that code:

- PowerShell: a ``ruster-env`` function, added to the profile with
  ``Invoke-Expression (& '<exe>' init --shell powershell | Out-String)``.
- Cmd: a ``ruster-env.cmd`` batch file written next to the executable.
"""

from __future__ import annotations

import sys
from pathlib import Path

from .shells import PowerShellDialect, Shell, ShellRegistry

POWERSHELL_WRAPPER = """
function ruster-env {{
    $exe = {exe_literal}
    $command = $args[0]
    if ($command -eq "load" -or $command -eq "unload") {{
        if ($args -contains "--help" -or $args -contains "-h") {{ & $exe $command --help; return }}
        $code = & $exe $command --shell powershell $args[1..$args.Count]
        Invoke-Expression ($code | Out-String)
    }} else {{
        & $exe $args
    }}
}}
"""

POWERSHELL_INSTRUCTIONS = """
Whoops! You are not meant to run this command directly.

To install ruster-env, add this line to your PowerShell Profile:
---------------------------------------------------------------
Invoke-Expression (& {exe_literal} init --shell powershell | Out-String)
---------------------------------------------------------------
"""

CMD_WRAPPER = r"""@echo off
REM ruster-env wrapper
SET "EXE={exe_path}"

IF "%1"=="load" GOTO Eval
IF "%1"=="unload" GOTO Eval
GOTO PassThrough

:Eval
IF "%2"=="--help" GOTO PassThrough
IF "%2"=="-h" GOTO PassThrough
"%EXE%" %1 --shell cmd %2 %3 %4 %5 > "%TEMP%\{script_name}"
CALL "%TEMP%\{script_name}"
DEL "%TEMP%\{script_name}"
EXIT /B 0

:PassThrough
"%EXE%" %*
"""

CMD_WRAPPER_NAME = "ruster-env.cmd"
CMD_SCRIPT_STEM = "ruster_tmp"


def executable_path() -> Path:
    """Best guess at the path of the installed ruster-env executable."""
    return Path(sys.argv[0]).resolve()


def _powershell_literal(exe_path: str | Path) -> str:
    return PowerShellDialect.quote(str(exe_path))


def powershell_wrapper(exe_path: str | Path) -> str:
    """Return the PowerShell function definition for the profile."""
    return POWERSHELL_WRAPPER.format(exe_literal=_powershell_literal(exe_path))


def powershell_instructions(exe_path: str | Path) -> str:
    """Return the human-readable install instructions for PowerShell."""
    return POWERSHELL_INSTRUCTIONS.format(exe_literal=_powershell_literal(exe_path))


def cmd_wrapper(exe_path: str | Path) -> str:
    """Return the content of the Cmd wrapper batch file."""
    script_name = CMD_SCRIPT_STEM + ShellRegistry.get(Shell.CMD).info.script_extension
    return CMD_WRAPPER.format(exe_path=exe_path, script_name=script_name)


def install_cmd_wrapper(exe_path: str | Path, target_dir: str | Path | None = None) -> Path:
    """
    Write the Cmd wrapper batch file.

    Args:
        exe_path: Executable the wrapper should call
        target_dir: Directory for the wrapper, defaults to the executable's directory

    Returns:
        Path of the written wrapper

    Raises:
        WrapperError: If the file cannot be written
    """
    exe_path = Path(exe_path)
    directory = Path(target_dir) if target_dir is not None else exe_path.parent
    wrapper_path = directory / CMD_WRAPPER_NAME

    try:
        # batch files want CRLF line endings
        wrapper_path.write_text(cmd_wrapper(exe_path), newline="\r\n")
    except OSError as exc:
        raise WrapperError(f"Failed to write wrapper {wrapper_path}: {exc}") from exc

    return wrapper_path


def render_init(shell: Shell, exe_path: str | Path, interactive: bool) -> str:
    """
    Return what ``init`` prints for PowerShell.

    When run from an interactive terminal the caller is a human, not the
    profile, so instructions are shown instead of code.
    """
    if shell is not Shell.POWERSHELL:
        raise ValueError(f"render_init only supports PowerShell, got '{shell.value}'")

    if interactive:
        return powershell_instructions(exe_path)
    return powershell_wrapper(exe_path)


class WrapperError(Exception):
    """Exception raised when a wrapper cannot be installed."""
