"""
Unit Tests for run.py Entry Script.

Tests individual functions with mocked dependencies.
"""

import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from run import PROCESS_COMMANDS, main, run_process, validate_project_root


class TestValidateProjectRoot:
    def test_succeeds_when_marker_exists(self, tmp_path):
        (tmp_path / ".project_root").touch()

        with patch("run.PROJECT_ROOT", tmp_path):
            assert validate_project_root() == tmp_path

    def test_exits_when_marker_missing(self, tmp_path):
        with patch("run.PROJECT_ROOT", tmp_path):
            with pytest.raises(SystemExit) as exc_info:
                validate_project_root()

        assert exc_info.value.code == 1


class TestMainCLI:
    @pytest.fixture
    def runner(self) -> CliRunner:
        return CliRunner()

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Eco Touch backend entry point" in result.output
        assert "--action" in result.output

    def test_info_lists_actions(self, runner):
        with patch("run.setup_logging"):
            result = runner.invoke(main, ["--action", "info"])

        assert result.exit_code == 0
        for action in ("server", "worker", "scheduler", "events"):
            assert f"--action {action}" in result.output

    def test_invalid_action(self, runner):
        result = runner.invoke(main, ["--action", "deploy"])

        assert result.exit_code != 0

    def test_config_prints_sections(self, runner):
        with patch("run.setup_logging"):
            result = runner.invoke(main, ["--action", "config"])

        assert result.exit_code == 0
        assert "[missions]" in result.output
        assert "[blockchain]" in result.output

    def test_server_builds_uvicorn_command(self, runner):
        with patch("run.setup_logging"), patch("run.subprocess.run") as run:
            result = runner.invoke(main, ["--action", "server", "--port", "9000", "--reload"])

        assert result.exit_code == 0
        cmd = run.call_args.args[0]
        assert cmd[:3] == [sys.executable, "-m", "uvicorn"]
        assert "modules.backend.main:app" in cmd
        assert cmd[cmd.index("--port") + 1] == "9000"
        assert cmd[-1] == "--reload"


class TestRunProcess:
    def test_worker_command(self):
        with patch("run.subprocess.run") as run:
            run_process(MagicMock(), "worker")

        assert run.call_args.args[0] == [sys.executable, *PROCESS_COMMANDS["worker"]]

    def test_exit_code_propagates(self):
        error = subprocess.CalledProcessError(returncode=3, cmd=["taskiq"])

        with patch("run.subprocess.run", side_effect=error):
            with pytest.raises(SystemExit) as exc_info:
                run_process(MagicMock(), "scheduler")

        assert exc_info.value.code == 3
