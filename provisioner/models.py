"""Data models for vm-provisioner."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, NamedTuple, Optional, Tuple


class RootDir(NamedTuple):
    name: str
    value: str


@dataclass(frozen=True)
class ComponentSpec:
    name: str  # "otp", "elixir", "qemu", or a guest OS selector
    version: str
    os: str = ""
    arch: str = ""


@dataclass(frozen=True)
class ResolvedArtifact:
    url: str
    filename: str
    install_root: Optional[Path] = None


@dataclass(frozen=True)
class EnvironmentOverlay:
    """Search-path prepends plus at most one root-directory variable."""

    path_prepends: Tuple[str, ...] = ()
    root_dir: Optional[RootDir] = None

    def apply(self, base: Mapping[str, str]) -> Dict[str, str]:
        """Return a new environment: ``base`` with this overlay's entries taking precedence."""
        env = dict(base)
        if self.path_prepends:
            inherited = base.get("PATH", "")
            entries = list(self.path_prepends)
            if inherited:
                entries.append(inherited)
            env["PATH"] = ":".join(entries)
        if self.root_dir is not None:
            env[self.root_dir.name] = self.root_dir.value
        return env


@dataclass(frozen=True)
class StageResult:
    status: int
    diagnostic: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 0


@dataclass
class ProvisionConfig:
    otp_version: str
    elixir_version: str
    qemu_version: str
    guest_os: str
    guest_version: str
    guest_arch: str
    image_url: Optional[str]
    scratch_dir: Path
    work_dir: Path
    guest_driver: str
    fetch_backend: str = "curl"
    config_path: Optional[Path] = None
