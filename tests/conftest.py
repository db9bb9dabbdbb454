"""Shared test fixtures: a default config and fakes for the transfer and shell boundaries."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from provisioner.models import ProvisionConfig


class FakeTransfer:
    """Stand-in for curl: records calls and writes a placeholder file on success."""

    def __init__(self, status: int = 0) -> None:
        self.status = status
        self.calls: List[Tuple[str, Path]] = []

    def __call__(self, url: str, destination: Path) -> int:
        self.calls.append((url, destination))
        if self.status == 0:
            destination.write_bytes(b"payload")
        return self.status


class FakeExecutor:
    """Stand-in for bash: returns scripted exit codes by command substring."""

    def __init__(self, failures: Optional[dict] = None) -> None:
        self.failures = failures or {}
        self.calls: List[Tuple[str, dict, Optional[Path]]] = []

    def __call__(self, command: str, env: dict, cwd: Optional[Path] = None) -> int:
        self.calls.append((command, env, cwd))
        for needle, status in self.failures.items():
            if needle in command:
                return status
        return 0

    def commands(self) -> List[str]:
        return [command for command, _, _ in self.calls]


@pytest.fixture
def default_config(tmp_path) -> ProvisionConfig:
    """Return a ProvisionConfig rooted in a temporary directory."""
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    return ProvisionConfig(
        otp_version="26.2.1",
        elixir_version="1.16.0",
        qemu_version="8.2.0",
        guest_os="freebsd",
        guest_version="latest",
        guest_arch="amd64",
        image_url=None,
        scratch_dir=tmp_path / "scratch",
        work_dir=work_dir,
        guest_driver="qemu.exs",
    )


@pytest.fixture
def fake_transfer() -> FakeTransfer:
    return FakeTransfer()


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


# Every environment variable parse_env() reads.
_PARSE_ENV_VARS = [
    "INPUT_OTP_VERSION",
    "INPUT_ELIXIR_VERSION",
    "INPUT_QEMU_VERSION",
    "INPUT_OS",
    "INPUT_VERSION",
    "INPUT_ARCH",
    "INPUT_OS_IMAGE_URL",
    "FETCH_BACKEND",
    "SCRATCH_DIR",
    "WORK_DIR",
    "GUEST_DRIVER",
    "GITHUB_ACTIONS",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear every variable parse_env() reads and run from an empty directory."""
    for key in _PARSE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
