"""Severity reporting for vm-provisioner.

Every message the pipeline emits goes through :class:`Reporter`, which maps
the three severities onto the CI platform:

* ``INFO`` is a plain log line.
* ``ERROR`` marks the step as failed but lets the pipeline continue.
* ``FATAL`` marks the step as failed and raises :class:`FatalError`, which
  unwinds to the single top-level handler in :mod:`provisioner.cli`.
"""

from __future__ import annotations

import enum
from typing import List, Optional

from provisioner.exceptions import FatalError
from provisioner.utils import get_env_bool, log


class Severity(enum.Enum):
    INFO = "info"
    ERROR = "error"
    FATAL = "fatal"


def running_in_github_actions() -> bool:
    return get_env_bool("GITHUB_ACTIONS", False)


def _escape_annotation(message: str) -> str:
    # Workflow commands are line oriented
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class Reporter:
    """Emit messages and remember whether the step has failed."""

    def __init__(self, annotate: Optional[bool] = None) -> None:
        self.annotate = running_in_github_actions() if annotate is None else annotate
        self.failures: List[str] = []

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0

    def report(self, level: Severity, message: str) -> None:
        if level is Severity.INFO:
            log("INFO", message)
            return
        self._mark_failed(message)
        if level is Severity.FATAL:
            raise FatalError(message, reported=True)

    def info(self, message: str) -> None:
        self.report(Severity.INFO, message)

    def error(self, message: str) -> None:
        self.report(Severity.ERROR, message)

    def fatal(self, message: str) -> None:
        self.report(Severity.FATAL, message)

    def abort(self, exc: FatalError) -> int:
        """Record a fatal error that reached the top level and return the exit status."""
        if not exc.reported:
            self._mark_failed(str(exc))
            exc.reported = True
        return 1

    def _mark_failed(self, message: str) -> None:
        self.failures.append(message)
        if self.annotate:
            print(f"::error::{_escape_annotation(message)}", flush=True)
        else:
            log("ERROR", message)
