"""Environment overlays contributed by each provisioning stage."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from provisioner.constants import OTP_BIN_SUBDIR, OTP_ROOT_SUBDIR, ROOT_DIR_VARIABLE
from provisioner.models import EnvironmentOverlay, RootDir


def compose(*overlays: EnvironmentOverlay) -> EnvironmentOverlay:
    """Merge overlays in provisioning order.

    Path entries keep the order they were contributed in (a repeated entry
    keeps its first position) and the last overlay that sets a root
    directory wins.
    """
    prepends: List[str] = []
    root_dir: Optional[RootDir] = None
    for overlay in overlays:
        for entry in overlay.path_prepends:
            if entry not in prepends:
                prepends.append(entry)
        if overlay.root_dir is not None:
            root_dir = overlay.root_dir
    return EnvironmentOverlay(path_prepends=tuple(prepends), root_dir=root_dir)


def runtime_overlay(install_root: Path) -> EnvironmentOverlay:
    return EnvironmentOverlay(
        path_prepends=(str(install_root / OTP_BIN_SUBDIR),),
        root_dir=RootDir(ROOT_DIR_VARIABLE, str(install_root / OTP_ROOT_SUBDIR)),
    )


def bin_overlay(install_root: Path) -> EnvironmentOverlay:
    return EnvironmentOverlay(path_prepends=(str(install_root / "bin"),))
