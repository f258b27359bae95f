"""
Tests for the command-line interface.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

from ruster_env import __version__
from ruster_env.cli import main


@pytest.fixture
def temp_dir(monkeypatch):
    """Run each test inside an empty directory with no config files around."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir)
        monkeypatch.chdir(path)
        monkeypatch.setenv("HOME", str(path / "home"))
        monkeypatch.setenv("USERPROFILE", str(path / "home"))
        yield path


@pytest.fixture
def env_file(temp_dir):
    """Write an env file and return its path as a string."""

    def _write(content: str, name: str = ".env") -> str:
        file_path = temp_dir / name
        file_path.write_text(content)
        return str(file_path)

    return _write


class TestHelp:
    """Tests for help and version output."""

    def test_help_banner(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "Bend the environment to your will" in out
        assert "init" not in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            main(["--version"])

        assert __version__ in capsys.readouterr().out


class TestLoadCommand:
    """Tests for the load subcommand."""

    def test_load_output_cmd(self, env_file, capsys):
        path = env_file("TEST_KEY=123")

        assert main(["load", path, "--shell", "cmd"]) == 0

        out = capsys.readouterr().out
        assert 'SET "TEST_KEY=123"' in out
        assert out.startswith("@echo off\n")

    def test_load_output_powershell(self, env_file, capsys):
        path = env_file("TEST_KEY=abc")

        assert main(["load", path, "--shell", "powershell"]) == 0

        assert "$env:TEST_KEY = 'abc';" in capsys.readouterr().out

    def test_load_defaults_to_dot_env(self, env_file, capsys):
        env_file("DEFAULT_KEY=1")

        assert main(["load", "--shell", "cmd"]) == 0

        assert 'SET "DEFAULT_KEY=1"' in capsys.readouterr().out

    def test_load_detects_powershell(self, env_file, capsys, monkeypatch):
        path = env_file("K=v")
        monkeypatch.setenv("PSModulePath", "C:\\Modules")

        main(["load", path])

        assert "$env:K = 'v';" in capsys.readouterr().out

    def test_load_verbose(self, env_file, capsys):
        path = env_file("K=v")

        main(["load", path, "-v", "--shell", "cmd"])

        captured = capsys.readouterr()
        assert "ECHO    + K = v" in captured.out
        assert "Variables:" in captured.err

    def test_load_no_overwrite(self, env_file, capsys, monkeypatch):
        path = env_file("RUSTER_CLI_EXISTING=NewValue\nRUSTER_CLI_FRESH=1")
        monkeypatch.setenv("RUSTER_CLI_EXISTING", "old")

        main(["load", path, "--no-overwrite", "--shell", "cmd"])

        out = capsys.readouterr().out
        assert "NewValue" not in out
        assert 'SET "RUSTER_CLI_FRESH=1"' in out
        assert "Safe Mode" in out

    def test_malformed_line_warns_on_stderr(self, env_file, capsys):
        path = env_file("GOOD=1\nBROKEN\n")

        assert main(["load", path, "--shell", "cmd"]) == 0

        captured = capsys.readouterr()
        assert "Line 2 is malformed" in captured.err
        assert "malformed" not in captured.out
        assert 'SET "GOOD=1"' in captured.out

    def test_missing_file(self, temp_dir, capsys):
        assert main(["load", str(temp_dir / "missing.env"), "--shell", "cmd"]) == 1

        captured = capsys.readouterr()
        assert "File not found" in captured.err
        assert captured.out == ""

    def test_invalid_shell_rejected(self, env_file):
        path = env_file("K=v")

        with pytest.raises(SystemExit) as exc_info:
            main(["load", path, "--shell", "bash"])

        assert exc_info.value.code == 2

    def test_config_supplies_defaults(self, temp_dir, env_file, capsys):
        env_file("FROM_CONFIG=yes", name="custom.env")
        (temp_dir / ".ruster-env.yaml").write_text(
            "options:\n  path: custom.env\n  shell: powershell\n"
        )

        assert main(["load"]) == 0

        assert "$env:FROM_CONFIG = 'yes';" in capsys.readouterr().out

    def test_invalid_config(self, temp_dir, env_file, capsys):
        path = env_file("K=v")
        config = temp_dir / "bad.yaml"
        config.write_text("options: [[[")

        assert main(["--config", str(config), "load", path]) == 1

        assert "Invalid YAML" in capsys.readouterr().err

    def test_verbose_reports_config_file(self, temp_dir, env_file, capsys):
        path = env_file("K=v")
        (temp_dir / ".ruster-env.yaml").write_text("options:\n  verbose: true\n")

        assert main(["load", path, "--shell", "cmd"]) == 0

        assert "Config file:" in capsys.readouterr().err

    def test_quoted_boolean_in_config_is_an_error(self, temp_dir, env_file, capsys):
        path = env_file("K=v")
        (temp_dir / ".ruster-env.yaml").write_text('options:\n  no_overwrite: "false"\n')

        assert main(["load", path, "--shell", "cmd"]) == 1

        captured = capsys.readouterr()
        assert "no_overwrite" in captured.err
        assert captured.out == ""


class TestUnloadCommand:
    """Tests for the unload subcommand."""

    def test_unload_cmd_nothing_active(self, env_file, capsys, monkeypatch):
        path = env_file("TO_DELETE=true")
        monkeypatch.delenv("TO_DELETE", raising=False)

        assert main(["unload", path, "--shell", "cmd"]) == 0

        out = capsys.readouterr().out
        assert 'SET "TO_DELETE="' in out
        assert "[Ruster] No active variables found" in out

    def test_unload_counts_active(self, env_file, capsys, monkeypatch):
        path = env_file("RUSTER_ACTIVE=true\nRUSTER_INACTIVE=1")
        monkeypatch.setenv("RUSTER_ACTIVE", "true")
        monkeypatch.delenv("RUSTER_INACTIVE", raising=False)

        main(["unload", path, "--shell", "powershell"])

        out = capsys.readouterr().out
        assert "Remove-Item env:\\RUSTER_ACTIVE -ErrorAction SilentlyContinue;" in out
        assert "Remove-Item env:\\RUSTER_INACTIVE -ErrorAction SilentlyContinue;" in out
        assert "[Ruster] Unloaded 1 variables" in out


class TestRunCommand:
    """Tests for the run subcommand."""

    def test_run_ephemeral(self, env_file, capfd):
        path = env_file("RUN_VAR=secret_value")
        script = "import os; print(os.environ['RUN_VAR'])"

        assert main(["run", "--path", path, sys.executable, "-c", script]) == 0

        assert "secret_value" in capfd.readouterr().out

    def test_run_no_overwrite(self, env_file, capfd, monkeypatch):
        path = env_file("RUSTER_RUN_KEEP=NewPath")
        monkeypatch.setenv("RUSTER_RUN_KEEP", "SystemPath")
        script = "import os; print(os.environ['RUSTER_RUN_KEEP'])"

        main(["run", "--path", path, "--no-overwrite", sys.executable, "-c", script])

        out = capfd.readouterr().out
        assert "SystemPath" in out
        assert "NewPath" not in out

    def test_run_propagates_exit_code(self, env_file):
        path = env_file("K=v")

        assert main(["run", "--path", path, sys.executable, "-c", "raise SystemExit(5)"]) == 5

    def test_run_without_command(self, env_file, capsys):
        path = env_file("K=v")

        assert main(["run", "--path", path]) == 2

        assert "No command given" in capsys.readouterr().err

    def test_run_missing_executable(self, env_file, capsys):
        path = env_file("K=v")

        assert main(["run", "--path", path, "ruster-env-definitely-missing-binary"]) == 127

        assert "Command not found" in capsys.readouterr().err


class TestShowCommand:
    """Tests for the show subcommand."""

    def test_show_list(self, capsys, monkeypatch):
        monkeypatch.setattr(os, "environ", {"RUSTER_TEST_VAR": "TestValue", "HOME": "/home/dev"})

        assert main(["show"]) == 0

        out = capsys.readouterr().out
        assert "System Environment Variables" in out
        assert "RUSTER_TEST_VAR" in out
        assert "TestValue" in out

    def test_show_single_var(self, capsys, monkeypatch):
        monkeypatch.setenv("SINGLE_LOOKUP_KEY", "SingleValue")

        assert main(["show", "SINGLE_LOOKUP_KEY"]) == 0

        out = capsys.readouterr().out
        assert out == "SingleValue\n"

    def test_show_missing_var(self, capsys, monkeypatch):
        monkeypatch.delenv("RUSTER_NOT_SET", raising=False)

        assert main(["show", "RUSTER_NOT_SET"]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "RUSTER_NOT_SET" in captured.err


class TestInitCommand:
    """Tests for the hidden init subcommand."""

    def test_init_powershell_prints_function(self, temp_dir, capsys):
        assert main(["init", "--shell", "powershell"]) == 0

        assert "function ruster-env" in capsys.readouterr().out

    def test_init_cmd_writes_wrapper(self, temp_dir, capsys, monkeypatch):
        monkeypatch.setattr(sys, "argv", [str(temp_dir / "ruster-core.exe")])

        assert main(["init", "--shell", "cmd"]) == 0

        assert (temp_dir / "ruster-env.cmd").exists()
        assert "Generated wrapper" in capsys.readouterr().out
