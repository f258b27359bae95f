"""
Environment file parser for ruster-env.

This module reads ``.env`` style files and turns them into an ordered
sequence of resolved key/value pairs.

File Format:
    # comment
    KEY=value
    export OTHER="quoted value"
    URL=${BASE}/api

Placeholders of the form ``${NAME}`` are resolved against variables defined
on earlier lines of the same file, then against the ambient environment.
Anything that cannot be resolved is kept as literal text.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

EXPORT_PREFIX = "export "


@dataclass(frozen=True)
class EnvVar:
    """A single resolved variable from an env file."""

    key: str
    value: str
    line_number: int = 0


@dataclass(frozen=True)
class MalformedLine:
    """A non-blank, non-comment line that could not be turned into a variable."""

    line_number: int
    reason: str

    @property
    def message(self) -> str:
        return f"Line {self.line_number} is malformed ({self.reason}), skipping."


@dataclass(frozen=True)
class ParsedDocument(Sequence):
    """
    Ordered, immutable result of parsing an env file.

    Behaves like a read-only sequence of EnvVar objects. Warnings about
    skipped lines are kept alongside so the caller can report them.
    """

    variables: tuple[EnvVar, ...] = ()
    warnings: tuple[MalformedLine, ...] = ()
    path: Path | None = field(default=None, compare=False)

    def __getitem__(self, index):
        return self.variables[index]

    def __len__(self) -> int:
        return len(self.variables)

    def __iter__(self) -> Iterator[EnvVar]:
        return iter(self.variables)

    def as_dict(self) -> dict[str, str]:
        """Collapse the document to a mapping; later duplicates win."""
        return {var.key: var.value for var in self.variables}


class EnvParser:
    """
    Parses env files line by line with ``${NAME}`` interpolation.

    Example:
        parser = EnvParser()
        document = parser.parse(".env")
        for var in document:
            print(var.key, var.value)
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        """
        Initialize the parser.

        Args:
            environ: Ambient environment used as interpolation fallback.
                     Defaults to the live process environment.
        """
        self.environ = os.environ if environ is None else environ

    def parse(self, path: str | Path) -> ParsedDocument:
        """
        Read and parse an env file.

        Args:
            path: Path to the env file

        Returns:
            A ParsedDocument with the variables in file order

        Raises:
            EnvFileError: If the file does not exist or cannot be read
        """
        file_path = Path(path)

        if not file_path.exists():
            raise EnvFileError(f"File not found: {path}", path=file_path)

        try:
            # newline="" so a lone "\r" stays part of the line
            with file_path.open(encoding="utf-8", newline="") as handle:
                content = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise EnvFileError(f"Failed to read .env file: {path}: {exc}", path=file_path) from exc

        return self.parse_text(content, path=file_path)

    def parse_text(self, content: str, path: Path | None = None) -> ParsedDocument:
        """Parse env file content that has already been read."""
        return self._parse_lines(split_lines(content), path)

    def _parse_lines(self, lines: list[str], path: Path | None = None) -> ParsedDocument:
        """Parse lines into a ParsedDocument."""
        variables: list[EnvVar] = []
        warnings: list[MalformedLine] = []
        context: dict[str, str] = {}

        for line_num, line in enumerate(lines, 1):
            stripped_line = line.strip()

            if not stripped_line or stripped_line.startswith("#"):
                continue

            if "=" not in stripped_line:
                warnings.append(MalformedLine(line_num, "missing '='"))
                continue

            key, raw_value = stripped_line.split("=", 1)
            key = strip_export(key.strip())

            if not key:
                warnings.append(MalformedLine(line_num, "empty key"))
                continue

            value = interpolate(strip_quotes(raw_value.strip()), context, self.environ)

            context[key] = value
            variables.append(EnvVar(key=key, value=value, line_number=line_num))

        return ParsedDocument(variables=tuple(variables), warnings=tuple(warnings), path=path)


def parse_env_file(path: str | Path, environ: Mapping[str, str] | None = None) -> ParsedDocument:
    """Parse an env file into an ordered ParsedDocument."""
    return EnvParser(environ).parse(path)


def split_lines(content: str) -> list[str]:
    """
    Split file content into lines on ``\\n`` only.

    A single ``\\r`` before the ``\\n`` is dropped. Other characters that
    ``str.splitlines`` treats as breaks (form feed, ``\\u2028``, a lone
    ``\\r``) stay inside the line.
    """
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def strip_export(key: str) -> str:
    """Remove a leading ``export `` keyword from a key."""
    if key.startswith(EXPORT_PREFIX):
        return key[len(EXPORT_PREFIX) :].strip()
    return key


def strip_quotes(value: str) -> str:
    """Remove one pair of matching surrounding ``"`` or ``'`` quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def interpolate(value: str, context: Mapping[str, str], environ: Mapping[str, str]) -> str:
    """
    Replace ``${NAME}`` placeholders in a value.

    Lookup order is the file-local context, then the ambient environment.
    Unknown names and unterminated placeholders are left as literal text.
    """
    result: list[str] = []
    i = 0
    length = len(value)

    while i < length:
        char = value[i]

        if char != "$" or value[i + 1 : i + 2] != "{":
            result.append(char)
            i += 1
            continue

        end = value.find("}", i + 2)
        if end == -1:
            # unterminated, keep the rest as-is
            result.append(value[i:])
            break

        name = value[i + 2 : end]
        if name in context:
            result.append(context[name])
        elif name in environ:
            result.append(environ[name])
        else:
            result.append(value[i : end + 1])

        i = end + 1

    return "".join(result)


class EnvFileError(Exception):
    """Exception raised when an env file cannot be opened or read."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)
