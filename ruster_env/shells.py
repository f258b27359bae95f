"""
Shell dialects and the code emitter for ruster-env.

This module turns parsed variables into lines of shell code that the calling
shell evaluates itself. Each supported shell is a ShellDialect subclass that
knows how to assign, clear and echo in its own syntax; the emitter drives a
dialect through the load or unload flow.

Usage:
    from ruster_env.shells import Mode, Shell, emit

    lines = emit(document, Shell.POWERSHELL, Mode.LOAD, verbose=True)
    print("\\n".join(lines))
"""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from .parser import EnvVar

BANNER = "[Ruster]"


class Shell(str, Enum):
    """Supported target shells."""

    POWERSHELL = "powershell"
    CMD = "cmd"

    @classmethod
    def from_name(cls, name: str) -> "Shell":
        """Look up a shell by its command-line name (case-insensitive)."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            choices = ", ".join(shell.value for shell in cls)
            raise ValueError(f"Unknown shell '{name}'. Choose one of: {choices}") from None


class Mode(str, Enum):
    """What the emitted code does with the variables."""

    LOAD = "load"
    UNLOAD = "unload"


class Color(str, Enum):
    """Message colours, named the way PowerShell's Write-Host expects them."""

    GREEN = "Green"
    YELLOW = "Yellow"
    GRAY = "Gray"
    DARK_GRAY = "DarkGray"


@dataclass(frozen=True)
class ShellInfo:
    """Metadata about a shell dialect."""

    shell: Shell
    script_extension: str


class ShellDialect(ABC):
    """
    Base class for shell dialects.

    A dialect renders the three kinds of statement the emitter needs:
    assigning a variable, clearing one, and printing an informational
    message. Subclasses may also add a preamble that appears once at the
    top of every script.
    """

    info: ShellInfo

    def preamble(self) -> list[str]:
        """Lines emitted once before any other statement."""
        return []

    @abstractmethod
    def assign(self, key: str, value: str) -> str:
        """Return a statement setting ``key`` to ``value``."""
        ...

    @abstractmethod
    def clear(self, key: str) -> str:
        """Return a statement removing ``key``; must not fail if it is unset."""
        ...

    @abstractmethod
    def echo(self, message: str, color: Color = Color.GRAY) -> str:
        """Return a statement printing ``message`` to the user."""
        ...


class PowerShellDialect(ShellDialect):
    """
    PowerShell: ``$env:`` assignments inside single-quoted literals.

    Keys made only of letters, digits and underscores use the short
    ``$env:KEY`` form. Anything else (dots, dashes, spaces) goes through the
    braced ``${env:KEY}`` form and ``Remove-Item -LiteralPath`` so the key
    cannot be read as extra syntax.
    """

    info = ShellInfo(shell=Shell.POWERSHELL, script_extension=".ps1")

    SIMPLE_NAME = re.compile(r"[A-Za-z0-9_]+")

    @staticmethod
    def quote(text: str) -> str:
        """Wrap text in a single-quoted literal, doubling embedded quotes."""
        return "'" + text.replace("'", "''") + "'"

    def variable(self, key: str) -> str:
        """Return the expression naming environment variable ``key``."""
        if self.SIMPLE_NAME.fullmatch(key):
            return f"$env:{key}"

        escaped = "".join(f"`{char}" if char in "`{}" else char for char in key)
        return "${env:" + escaped + "}"

    def assign(self, key: str, value: str) -> str:
        return f"{self.variable(key)} = {self.quote(value)};"

    def clear(self, key: str) -> str:
        if self.SIMPLE_NAME.fullmatch(key):
            return f"Remove-Item env:\\{key} -ErrorAction SilentlyContinue;"
        literal = self.quote("env:" + key)
        return f"Remove-Item -LiteralPath {literal} -ErrorAction SilentlyContinue;"

    def echo(self, message: str, color: Color = Color.GRAY) -> str:
        return f"Write-Host {self.quote(message)} -ForegroundColor {Color(color).value};"


class CmdDialect(ShellDialect):
    """
    Windows Cmd: ``SET "KEY=VALUE"`` statements in a batch script.

    The output is meant to be written to a temporary batch file and CALLed,
    so ``%`` is doubled in keys, values and messages to survive batch
    expansion. Inside ``SET "..."`` the other metacharacters are inert, but
    a ``"`` in the key or value would end the quoting early; such lines fall
    back to an unquoted ``SET KEY=VALUE`` with every metacharacter
    caret-escaped, the same escaping ECHO text always gets.
    """

    info = ShellInfo(shell=Shell.CMD, script_extension=".bat")

    METACHARACTERS = '^&|<>"'

    def preamble(self) -> list[str]:
        return ["@echo off"]

    def assign(self, key: str, value: str) -> str:
        if '"' in key or '"' in value:
            return f"SET {self._escape(key)}={self._escape(value)}"
        return f'SET "{self._escape_percent(key)}={self._escape_percent(value)}"'

    def clear(self, key: str) -> str:
        if '"' in key:
            return f"SET {self._escape(key)}="
        return f'SET "{self._escape_percent(key)}="'

    def echo(self, message: str, color: Color = Color.GRAY) -> str:
        return f"ECHO {self._escape(message)}"

    def _escape(self, text: str) -> str:
        escaped = "".join(f"^{char}" if char in self.METACHARACTERS else char for char in text)
        return self._escape_percent(escaped)

    @staticmethod
    def _escape_percent(text: str) -> str:
        return text.replace("%", "%%")


class ShellRegistry:
    """
    Registry of available shell dialects.

    Maps each Shell to a dialect class so callers can obtain a dialect
    instance by enum member or by name.
    """

    _dialects: dict[Shell, type[ShellDialect]] = {}

    @classmethod
    def register(cls, dialect_class: type[ShellDialect]) -> None:
        """
        Register a dialect class.

        Raises:
            ValueError: If the class has no ShellInfo attribute
            KeyError: If a dialect for the same shell is already registered
        """
        if not isinstance(getattr(dialect_class, "info", None), ShellInfo):
            raise ValueError(f"Dialect {dialect_class.__name__} must have a ShellInfo attribute")

        shell = dialect_class.info.shell
        if shell in cls._dialects:
            raise KeyError(f"Dialect for '{shell.value}' is already registered")

        cls._dialects[shell] = dialect_class

    @classmethod
    def get(cls, shell: Shell | str) -> ShellDialect:
        """
        Get a dialect instance for a shell.

        Raises:
            KeyError: If no dialect is registered for the shell
        """
        if isinstance(shell, str) and not isinstance(shell, Shell):
            shell = Shell.from_name(shell)

        if shell not in cls._dialects:
            available = ", ".join(s.value for s in cls._dialects)
            raise KeyError(f"Shell '{shell.value}' not supported. Available shells: {available}")

        return cls._dialects[shell]()

    @classmethod
    def list_shells(cls) -> list[ShellInfo]:
        """List metadata for every registered dialect."""
        return [dialect.info for dialect in cls._dialects.values()]


ShellRegistry.register(PowerShellDialect)
ShellRegistry.register(CmdDialect)


class ShellEmitter:
    """
    Generates load/unload scripts for one shell dialect.

    The ambient environment is only read, to decide which variables are
    skipped (no-overwrite) or counted (unload). Nothing is ever executed.
    """

    def __init__(self, dialect: ShellDialect, environ: Mapping[str, str] | None = None) -> None:
        self.dialect = dialect
        self.environ = os.environ if environ is None else environ

    def emit(
        self,
        variables: Iterable[EnvVar],
        mode: Mode,
        verbose: bool = False,
        no_overwrite: bool = False,
    ) -> list[str]:
        """Render the script for ``mode`` as a list of lines."""
        lines = self.dialect.preamble()

        if Mode(mode) is Mode.LOAD:
            lines.extend(self._load(variables, verbose, no_overwrite))
        else:
            lines.extend(self._unload(variables, verbose))

        return lines

    def _load(self, variables: Iterable[EnvVar], verbose: bool, no_overwrite: bool) -> list[str]:
        lines: list[str] = []
        count = 0

        for var in variables:
            if no_overwrite and var.key in self.environ:
                if verbose:
                    lines.append(self.dialect.echo(f"   ~ {var.key} (kept existing)", Color.DARK_GRAY))
                continue

            lines.append(self.dialect.assign(var.key, var.value))
            count += 1
            if verbose:
                lines.append(self.dialect.echo(f"   + {var.key} = {var.value}", Color.GRAY))

        if no_overwrite:
            lines.append(
                self.dialect.echo(
                    f"{BANNER} Loaded variables (Safe Mode: existing variables kept)", Color.GREEN
                )
            )
        else:
            lines.append(self.dialect.echo(f"{BANNER} Loaded {count} variables", Color.GREEN))

        return lines

    def _unload(self, variables: Iterable[EnvVar], verbose: bool) -> list[str]:
        lines: list[str] = []
        count = 0

        for var in variables:
            lines.append(self.dialect.clear(var.key))

            if var.key in self.environ:
                count += 1
                if verbose:
                    lines.append(self.dialect.echo(f"   - {var.key}", Color.GRAY))

        if count:
            lines.append(self.dialect.echo(f"{BANNER} Unloaded {count} variables", Color.YELLOW))
        else:
            lines.append(self.dialect.echo(f"{BANNER} No active variables found", Color.DARK_GRAY))

        return lines


def emit(
    variables: Iterable[EnvVar],
    shell: Shell | str,
    mode: Mode | str,
    verbose: bool = False,
    no_overwrite: bool = False,
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    """
    Generate shell code for a set of variables.

    Args:
        variables: Parsed variables, in file order
        shell: Target shell dialect
        mode: Mode.LOAD to assign, Mode.UNLOAD to clear
        verbose: Add a log line per variable
        no_overwrite: In load mode, skip keys already present in the environment
        environ: Ambient environment; defaults to the process environment

    Returns:
        Lines of shell code, without trailing newlines
    """
    emitter = ShellEmitter(ShellRegistry.get(shell), environ)
    return emitter.emit(variables, Mode(mode), verbose=verbose, no_overwrite=no_overwrite)


def detect_shell(environ: Mapping[str, str] | None = None) -> Shell:
    """Guess the calling shell: PowerShell sets PSModulePath, Cmd does not."""
    environ = os.environ if environ is None else environ
    if "PSModulePath" in environ:
        return Shell.POWERSHELL
    return Shell.CMD
