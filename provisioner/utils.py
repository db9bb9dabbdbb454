"""Utility functions for vm-provisioner."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import List, Optional

from provisioner.constants import _LOG_VERBOSE, TRUTHY


def log(level: str, message: str) -> None:
    """Lightweight structured logging with coloured level prefixes."""
    if level == "DEBUG" and not _LOG_VERBOSE:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    print(f"{colour}[{level}]{reset} {message}", flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower() in TRUTHY


def get_input(name: str) -> Optional[str]:
    """Read a CI step input (``INPUT_<NAME>``); blank values count as unset."""
    raw = os.environ.get(f"INPUT_{name.replace(' ', '_').upper()}")
    if raw is None:
        return None
    return raw.strip() or None


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def run(cmd: List[str], check: bool = False, **kwargs) -> subprocess.CompletedProcess:
    """Run command with logging; stdio is inherited unless the caller redirects it."""
    log("DEBUG", f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, check=check, **kwargs)
    return result
