"""
Command-line interface for ruster-env.

This module provides the CLI entry point and argument parsing. Shell code
produced by ``load`` and ``unload`` is written to stdout so the wrapper can
evaluate it; every human-facing message goes to stderr.
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ConfigurationError, RusterEnvConfig
from .parser import EnvFileError, ParsedDocument, parse_env_file
from .runner import RunError, run_command
from .shells import Mode, Shell, ShellRegistry, detect_shell, emit
from .wrapper import WrapperError, executable_path, install_cmd_wrapper, render_init

console = Console()
err_console = Console(stderr=True)

SHELL_CHOICES = [info.shell.value for info in ShellRegistry.list_shells()]


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    try:
        return _main(argv)
    except KeyboardInterrupt:
        err_console.print("[yellow]Cancelled.[/yellow]")
        return 130
    except Exception as exc:
        err_console.print(f"[red]Error: {escape(str(exc))}[/red]")
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ruster-env",
        description="ruster-env: Bend the environment to your will.\n\n"
        "Load .env files into PowerShell or Cmd without a daemon.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ruster-env load                      # Load .env into the current shell
  ruster-env load .env.dev -v          # Load another file, listing each variable
  ruster-env load --no-overwrite       # Keep variables that are already set
  ruster-env unload .env.dev           # Remove the file's variables again
  ruster-env run -- python app.py      # Run one command with .env applied
  ruster-env show PATH                 # Print a single variable
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ruster-env {__version__}",
    )

    parser.add_argument(
        "--config",
        help="Configuration file path",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        metavar="{load,unload,run,show}",
    )
    subparsers.required = True

    init_parser = subparsers.add_parser("init")
    init_parser.add_argument("--shell", type=str.lower, choices=SHELL_CHOICES)

    load_parser = subparsers.add_parser("load", help="Load variables from a .env file")
    _add_file_arguments(load_parser)
    load_parser.add_argument(
        "--no-overwrite",
        action="store_true",
        default=None,
        help="Skip variables that already exist in the environment",
    )

    unload_parser = subparsers.add_parser("unload", help="Remove variables defined in a .env file")
    _add_file_arguments(unload_parser)

    run_parser = subparsers.add_parser(
        "run", help="Run a command with the .env variables applied"
    )
    run_parser.add_argument("--path", default=None, help="Env file to load (default: .env)")
    run_parser.add_argument(
        "--no-overwrite",
        action="store_true",
        default=None,
        help="Skip variables that already exist in the environment",
    )
    run_parser.add_argument("cmd", nargs=argparse.REMAINDER, help="Command and its arguments")

    show_parser = subparsers.add_parser("show", help="Show the current environment variables")
    show_parser.add_argument("key", nargs="?", default=None, help="Print only this variable")

    return parser


def _add_file_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", nargs="?", default=None, help="Env file (default: .env)")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Print every variable as it is processed",
    )
    parser.add_argument(
        "--shell",
        type=str.lower,
        choices=SHELL_CHOICES,
        help=argparse.SUPPRESS,
    )


def _main(argv: Sequence[str] | None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "show":
        return _show(args.key, os.environ)

    try:
        config = RusterEnvConfig.load(args.config)
    except ConfigurationError as exc:
        err_console.print(f"[red]Error: {escape(exc.message)}[/red]")
        return 1

    if args.command == "init":
        return _init(_resolve_shell(args.shell, config))

    if args.command == "run":
        return _run(args, config)

    return _emit(args, config, Mode(args.command))


def _resolve_shell(name: str | None, config: RusterEnvConfig) -> Shell:
    if name:
        return Shell.from_name(name)
    if config.shell is not None:
        return config.shell
    return detect_shell()


def _option(value, default):
    return default if value is None else value


def _parse(path: str, verbose: bool) -> ParsedDocument | None:
    """Parse the env file, reporting warnings and errors on stderr."""
    try:
        document = parse_env_file(path)
    except EnvFileError as exc:
        err_console.print(f"[red]Error: {escape(exc.message)}[/red]")
        return None

    for warning in document.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {escape(warning.message)}")

    if verbose:
        err_console.print(f"[cyan]Env file:[/cyan] {escape(str(document.path))}")
        err_console.print(f"[cyan]Variables:[/cyan] {len(document)}")

    return document


def _emit(args: argparse.Namespace, config: RusterEnvConfig, mode: Mode) -> int:
    """Handle ``load`` and ``unload``."""
    path = _option(args.path, config.path)
    verbose = _option(args.verbose, config.verbose)
    no_overwrite = _option(getattr(args, "no_overwrite", None), config.no_overwrite)
    shell = _resolve_shell(args.shell, config)

    if verbose and config.source is not None:
        err_console.print(f"[cyan]Config file:[/cyan] {escape(str(config.source))}")

    document = _parse(path, verbose)
    if document is None:
        return 1

    lines = emit(
        document,
        shell,
        mode,
        verbose=verbose,
        no_overwrite=no_overwrite and mode is Mode.LOAD,
    )

    sys.stdout.write("\n".join(lines) + "\n")
    sys.stdout.flush()
    return 0


def _run(args: argparse.Namespace, config: RusterEnvConfig) -> int:
    """Handle ``run``."""
    command = list(args.cmd)
    if command and command[0] == "--":
        command = command[1:]

    if not command:
        err_console.print("[red]Error: No command given to run[/red]")
        return 2

    path = _option(args.path, config.path)
    no_overwrite = _option(args.no_overwrite, config.no_overwrite)

    document = _parse(path, verbose=False)
    if document is None:
        return 1

    try:
        return run_command(command, document, no_overwrite=no_overwrite)
    except RunError as exc:
        err_console.print(f"[red]Error: {escape(exc.message)}[/red]")
        return exc.exit_code


def _show(key: str | None, environ: Mapping[str, str]) -> int:
    """Handle ``show``."""
    if key is not None:
        if key not in environ:
            err_console.print(f"[yellow]Variable '{escape(key)}' is not set.[/yellow]")
            return 1
        sys.stdout.write(environ[key] + "\n")
        sys.stdout.flush()
        return 0

    table = Table(title="System Environment Variables")
    table.add_column("Name", style="cyan", overflow="fold")
    table.add_column("Value", style="green", overflow="fold")

    for name in sorted(environ):
        table.add_row(escape(name), escape(environ[name]))

    console.print(table)
    return 0


def _init(shell: Shell) -> int:
    """Handle the hidden ``init`` command."""
    exe_path = executable_path()

    if shell is Shell.POWERSHELL:
        sys.stdout.write(render_init(shell, exe_path, interactive=sys.stdout.isatty()))
        sys.stdout.flush()
        return 0

    try:
        wrapper_path = install_cmd_wrapper(exe_path)
    except WrapperError as exc:
        err_console.print(f"[red]Failed to write wrapper: {escape(str(exc))}[/red]")
        return 1

    console.print(f"[green]Generated wrapper: {escape(str(wrapper_path))}[/green]")
    return 0
