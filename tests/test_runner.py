"""Tests for provisioner.runner module."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from provisioner.exceptions import FatalError
from provisioner.models import EnvironmentOverlay, RootDir
from provisioner.reporter import Reporter
from provisioner.runner import Runner, bash_executor


class _Completed:
    def __init__(self, returncode: int):
        self.returncode = returncode


class TestRunner:
    def test_success_reports_info(self, fake_executor, capsys):
        reporter = Reporter(annotate=False)
        runner = Runner(reporter, fake_executor, base_env={"PATH": "/usr/bin"})
        result = runner.run("tar -xzf x.tar.gz", success="Extracted.", failure="Error extracting")
        assert result.ok
        assert result.status == 0
        assert "Extracted." in capsys.readouterr().out
        assert not reporter.failed

    def test_failure_is_fatal_with_exit_code(self, fake_executor):
        reporter = Reporter(annotate=False)
        fake_executor.failures = {"make": 2}
        runner = Runner(reporter, fake_executor, base_env={})
        with pytest.raises(FatalError, match="Error building Elixir 1.16.0. Exit code: 2"):
            runner.run("make clean compile", success="ok", failure="Error building Elixir 1.16.0")
        assert reporter.failures == ["Error building Elixir 1.16.0. Exit code: 2"]

    def test_overlay_wins_over_inherited_env(self, fake_executor):
        runner = Runner(
            Reporter(annotate=False),
            fake_executor,
            base_env={"PATH": "/usr/bin", "ERL_ROOTDIR": "/old", "HOME": "/root"},
        )
        overlay = EnvironmentOverlay(("/tmp/otp/bin",), RootDir("ERL_ROOTDIR", "/tmp/otp/lib/erlang"))
        runner.run("erl", overlay, success="ok", failure="bad")
        _, env, _ = fake_executor.calls[0]
        assert env["PATH"] == "/tmp/otp/bin:/usr/bin"
        assert env["ERL_ROOTDIR"] == "/tmp/otp/lib/erlang"
        assert env["HOME"] == "/root"

    def test_without_overlay_passes_inherited_env(self, fake_executor):
        runner = Runner(Reporter(annotate=False), fake_executor, base_env={"PATH": "/usr/bin"})
        runner.run("true", success="ok", failure="bad")
        assert fake_executor.calls[0][1] == {"PATH": "/usr/bin"}

    def test_cwd_forwarded(self, fake_executor, tmp_path):
        runner = Runner(Reporter(annotate=False), fake_executor, base_env={})
        runner.run("true", success="ok", failure="bad", cwd=tmp_path)
        assert fake_executor.calls[0][2] == tmp_path

    def test_missing_shell_is_fatal(self):
        def missing(command, env, cwd=None):
            raise FileNotFoundError("bash")

        runner = Runner(Reporter(annotate=False), missing, base_env={})
        with pytest.raises(FatalError, match="Exit code: 127"):
            runner.run("true", success="ok", failure="Error starting VM")


class TestBashExecutor:
    def test_invokes_bash_c(self, tmp_path):
        with patch("provisioner.runner.run", return_value=_Completed(3)) as mock_run:
            status = bash_executor("echo hi", {"PATH": "/bin"}, tmp_path)
        assert status == 3
        mock_run.assert_called_once_with(["bash", "-c", "echo hi"], env={"PATH": "/bin"}, cwd=tmp_path)
