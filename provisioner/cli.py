"""CLI entry points for vm-provisioner."""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from typing import Dict, List, Optional

from provisioner.config import parse_env
from provisioner.constants import CURRENT_GUEST_RELEASES, GUEST_ARCH_ALIASES, GUEST_VERSION_ALIASES
from provisioner.exceptions import FatalError, ProvisionError, UnknownArchitectureError
from provisioner.models import ProvisionConfig, ResolvedArtifact
from provisioner.reporter import Reporter
from provisioner.stages import Provisioner, Stage, plan
from provisioner.utils import log


def list_arches() -> None:
    """Print the guest architecture alias table."""
    max_key = max(len(k) for k in GUEST_ARCH_ALIASES)
    for key in sorted(GUEST_ARCH_ALIASES):
        alias = GUEST_ARCH_ALIASES[key]
        os_arch = alias.os_arch or "-"
        print(f"  {key:<{max_key}}  url={alias.url_arch}  os={os_arch}  isa={alias.instruction_set}")
    aliases = ", ".join(f"{k} -> {v}" for k, v in sorted(GUEST_VERSION_ALIASES.items()))
    print(f"  current releases: {', '.join(sorted(CURRENT_GUEST_RELEASES))} ({aliases})")


def show_config(cfg: ProvisionConfig) -> None:
    """Print the resolved configuration and exit."""
    for field in dataclasses.fields(cfg):
        print(f"  {field.name}: {getattr(cfg, field.name)}")


def print_plan(artifacts: Dict[Stage, ResolvedArtifact]) -> None:
    for stage, artifact in artifacts.items():
        print(f"  {stage.value}:")
        print(f"    url:      {artifact.url}")
        print(f"    filename: {artifact.filename}")
        print(f"    into:     {artifact.install_root}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Provision a toolchain and boot a guest VM image")
    parser.add_argument("--config", type=Path, default=None, metavar="PATH", help="YAML file with toolchain/guest settings")
    parser.add_argument("--show-config", action="store_true", help="Show resolved configuration and exit")
    parser.add_argument("--dry-run", action="store_true", help="Resolve every download URL, then exit")
    parser.add_argument("--list-arches", action="store_true", help="List supported guest architectures and exit")
    args = parser.parse_args(argv)

    if args.list_arches:
        list_arches()
        return 0

    try:
        cfg = parse_env(args.config)
    except ProvisionError as exc:
        log("ERROR", str(exc))
        return 1

    if args.show_config:
        show_config(cfg)
        return 0

    reporter = Reporter()

    if args.dry_run:
        try:
            artifacts = plan(cfg)
        except FatalError as exc:
            return reporter.abort(exc)
        except (ProvisionError, UnknownArchitectureError) as exc:
            log("ERROR", str(exc))
            return 1
        log("INFO", "=== Provisioning plan ===")
        print_plan(artifacts)
        log("INFO", "=== Dry-run complete (nothing downloaded) ===")
        return 0

    provisioner = Provisioner(cfg, reporter)
    try:
        provisioner.run()
    except FatalError as exc:
        return reporter.abort(exc)
    except Exception as exc:
        reporter.error(f"Unexpected error in {provisioner.state.value}: {exc}")
        import traceback

        traceback.print_exc()
        return 1
    return reporter.exit_code
