"""Shell command execution for extract, build and launch steps."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Mapping, Optional

from provisioner.models import EnvironmentOverlay, StageResult
from provisioner.reporter import Reporter
from provisioner.utils import run

Executor = Callable[..., int]


def bash_executor(command: str, env: Mapping[str, str], cwd: Optional[Path] = None) -> int:
    """Run ``command`` under ``bash -c`` with inherited stdio and no timeout."""
    result = run(["bash", "-c", command], env=dict(env), cwd=cwd)
    return result.returncode


class Runner:
    """Run one shell step and translate its exit status into a report."""

    def __init__(
        self,
        reporter: Reporter,
        executor: Optional[Executor] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.reporter = reporter
        self.executor = executor or bash_executor
        self._base_env = base_env

    @property
    def base_env(self) -> Mapping[str, str]:
        return os.environ if self._base_env is None else self._base_env

    def run(
        self,
        command: str,
        overlay: Optional[EnvironmentOverlay] = None,
        *,
        success: str,
        failure: str,
        cwd: Optional[Path] = None,
    ) -> StageResult:
        """Run ``command`` under the inherited environment plus ``overlay``.

        A non-zero status is reported as fatal, so a returned result is
        always successful; callers keep it as a record of what ran.
        """
        env = overlay.apply(self.base_env) if overlay is not None else dict(self.base_env)
        try:
            status = self.executor(command, env, cwd)
        except FileNotFoundError as exc:
            # bash itself or the working directory is missing
            status = 127
            diagnostic = str(exc)
        else:
            diagnostic = None

        result = StageResult(status=status, diagnostic=diagnostic)
        if result.ok:
            self.reporter.info(success)
        else:
            self.reporter.fatal(f"{failure}. Exit code: {status}")
        return result
