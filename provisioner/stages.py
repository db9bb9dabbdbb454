"""Stage orchestration: toolchain, hypervisor, guest image, launch."""

from __future__ import annotations

import enum
import shlex
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from provisioner.constants import (
    DOWNLOADS_SUBDIR,
    FORCED_HOST_ARCH,
    INSTALLED_MARKER_NAME,
    UNSUPPORTED_HOSTS,
)
from provisioner.environment import bin_overlay, compose, runtime_overlay
from provisioner.exceptions import (
    FatalError,
    ProvisionError,
    UnknownArchitectureError,
    UnsupportedPlatformError,
)
from provisioner.fetcher import TRANSFER_BACKENDS, Fetcher
from provisioner.locator import (
    filename_from_url,
    resolve_compiler_source_url,
    resolve_component,
    resolve_guest_image,
    resolve_hypervisor_url,
    resolve_runtime_url,
)
from provisioner.models import ComponentSpec, EnvironmentOverlay, ProvisionConfig, ResolvedArtifact, StageResult
from provisioner.reporter import Reporter
from provisioner.runner import Runner
from provisioner.utils import log


class Stage(enum.Enum):
    PROVISION_RUNTIME = "provision-runtime"
    PROVISION_COMPILER = "provision-compiler"
    PROVISION_HYPERVISOR = "provision-hypervisor"
    RESOLVE_GUEST_IMAGE = "resolve-guest-image"
    FETCH_GUEST_IMAGE = "fetch-guest-image"
    LAUNCH_GUEST = "launch-guest"
    DONE = "done"
    ABORTED = "aborted"


PIPELINE = (
    Stage.PROVISION_RUNTIME,
    Stage.PROVISION_COMPILER,
    Stage.PROVISION_HYPERVISOR,
    Stage.RESOLVE_GUEST_IMAGE,
    Stage.FETCH_GUEST_IMAGE,
    Stage.LAUNCH_GUEST,
)


def runtime_arch(host_os: str) -> str:
    """Architecture of the precompiled runtime for ``host_os``."""
    if host_os in FORCED_HOST_ARCH:
        return FORCED_HOST_ARCH[host_os]
    if host_os in UNSUPPORTED_HOSTS:
        raise UnsupportedPlatformError(UNSUPPORTED_HOSTS[host_os])
    raise UnsupportedPlatformError(f"Unsupported operating system: {host_os}")


def install_root(scratch_dir: Path, component: str, version: str) -> Path:
    return scratch_dir / f"{component}-{version}"


def download_path(scratch_dir: Path, component: str, version: str, filename: str) -> Path:
    return scratch_dir / DOWNLOADS_SUBDIR / f"{component}-{version}" / filename


PLAN_STAGES = (
    (Stage.PROVISION_RUNTIME, "otp"),
    (Stage.PROVISION_COMPILER, "elixir"),
    (Stage.PROVISION_HYPERVISOR, "qemu"),
)


def component_specs(cfg: ProvisionConfig, host_os: str) -> Dict[str, ComponentSpec]:
    return {
        "otp": ComponentSpec("otp", cfg.otp_version, host_os, runtime_arch(host_os)),
        "elixir": ComponentSpec("elixir", cfg.elixir_version),
        "qemu": ComponentSpec("qemu", cfg.qemu_version),
    }


def plan(cfg: ProvisionConfig, host_os: Optional[str] = None) -> Dict[Stage, ResolvedArtifact]:
    """Resolve every artifact the pipeline would fetch, without touching disk or network."""
    host_os = host_os or sys.platform
    specs = component_specs(cfg, host_os)
    artifacts: Dict[Stage, ResolvedArtifact] = {}
    for stage, name in PLAN_STAGES:
        spec = specs[name]
        url, filename = resolve_component(spec)
        artifacts[stage] = ResolvedArtifact(url, filename, install_root(cfg.scratch_dir, name, spec.version))

    if cfg.image_url:
        url, filename = cfg.image_url, filename_from_url(cfg.image_url)
    else:
        guest = ComponentSpec(cfg.guest_os, cfg.guest_version, cfg.guest_os, cfg.guest_arch)
        url, filename = resolve_component(guest)
    artifacts[Stage.FETCH_GUEST_IMAGE] = ResolvedArtifact(url, filename, cfg.work_dir)
    return artifacts


class Provisioner:
    """Run the provisioning pipeline one stage at a time.

    Each stage resolves its artifact, fetches it, unpacks or builds it and
    publishes an environment overlay for the stages after it. A
    :class:`FatalError` from any stage moves the pipeline to
    ``Stage.ABORTED`` and propagates to the caller.
    """

    def __init__(
        self,
        cfg: ProvisionConfig,
        reporter: Reporter,
        fetcher: Optional[Fetcher] = None,
        runner: Optional[Runner] = None,
        host_os: Optional[str] = None,
    ) -> None:
        self.cfg = cfg
        self.reporter = reporter
        self.fetcher = fetcher or Fetcher(reporter, TRANSFER_BACKENDS[cfg.fetch_backend])
        self.runner = runner or Runner(reporter)
        self.host_os = host_os or sys.platform
        self.state = Stage.PROVISION_RUNTIME
        self.completed: List[Stage] = []
        self.results: List[Tuple[Stage, StageResult]] = []
        self.overlays: List[EnvironmentOverlay] = []
        self.image: Optional[ResolvedArtifact] = None
        self._handlers: Dict[Stage, Callable[[], None]] = {
            Stage.PROVISION_RUNTIME: self.provision_runtime,
            Stage.PROVISION_COMPILER: self.provision_compiler,
            Stage.PROVISION_HYPERVISOR: self.provision_hypervisor,
            Stage.RESOLVE_GUEST_IMAGE: self.resolve_guest_image,
            Stage.FETCH_GUEST_IMAGE: self.fetch_guest_image,
            Stage.LAUNCH_GUEST: self.launch_guest,
        }

    def run(self) -> Stage:
        for stage in PIPELINE:
            self.state = stage
            log("DEBUG", f"Stage: {stage.value}")
            try:
                self._handlers[stage]()
            except FatalError:
                self.state = Stage.ABORTED
                raise
            self.completed.append(stage)
        self.state = Stage.DONE
        return self.state

    @property
    def environment(self) -> EnvironmentOverlay:
        return compose(*self.overlays)

    # --- toolchain -----------------------------------------------------

    def provision_runtime(self) -> None:
        version = self.cfg.otp_version
        url, filename = resolve_runtime_url(version, self.host_os, runtime_arch(self.host_os))
        root = install_root(self.cfg.scratch_dir, "otp", version)
        if self._is_installed(root):
            self.reporter.info(f"Erlang/OTP {version} already provisioned at {root}, skipping.")
        else:
            self.reporter.info(f"Downloading Erlang/OTP image from {url}")
            archive = self.fetcher.fetch(url, download_path(self.cfg.scratch_dir, "otp", version, filename))
            self.reporter.info("Extracting Erlang/OTP")
            self._run(
                _extract_command(root, archive),
                success="Erlang/OTP extracted successfully.",
                failure="Error extracting Erlang/OTP",
            )
            self._mark_installed(root)
        self.overlays.append(runtime_overlay(root))

    def provision_compiler(self) -> None:
        version = self.cfg.elixir_version
        url, filename = resolve_compiler_source_url(version)
        root = install_root(self.cfg.scratch_dir, "elixir", version)
        overlay = bin_overlay(root)
        if self._is_installed(root):
            self.reporter.info(f"Elixir {version} already built at {root}, skipping.")
        else:
            self.reporter.info(f"Downloading Elixir {version}")
            archive = self.fetcher.fetch(url, download_path(self.cfg.scratch_dir, "elixir", version, filename))
            self.reporter.info(f"Extracting Elixir {version}")
            self._run(
                _extract_command(root, archive, strip_components=1),
                success=f"Elixir {version} extracted successfully.",
                failure=f"Error extracting Elixir {version}",
            )
            self.reporter.info(f"Building Elixir {version}")
            self._run(
                f"cd {shlex.quote(str(root))} && make clean compile"
                " && mix local.hex --force && mix local.rebar --force",
                compose(*self.overlays, overlay),
                success=f"Elixir {version} built successfully.",
                failure=f"Error building Elixir {version}",
            )
            self._mark_installed(root)
        self.overlays.append(overlay)

    def provision_hypervisor(self) -> None:
        version = self.cfg.qemu_version
        url, filename = resolve_hypervisor_url(version)
        root = install_root(self.cfg.scratch_dir, "qemu", version)
        if self._is_installed(root):
            self.reporter.info(f"QEMU {version} already provisioned at {root}, skipping.")
        else:
            self.reporter.info(f"Downloading QEMU {version}")
            archive = self.fetcher.fetch(url, download_path(self.cfg.scratch_dir, "qemu", version, filename))
            self.reporter.info(f"Extracting QEMU {version}")
            self._run(
                _extract_command(root, archive),
                success=f"QEMU {version} extracted successfully.",
                failure=f"Error extracting QEMU {version}",
            )
            self._mark_installed(root)
        self.overlays.append(bin_overlay(root))

    # --- guest -----------------------------------------------------------

    def resolve_guest_image(self) -> None:
        cfg = self.cfg
        if cfg.image_url:
            try:
                filename = filename_from_url(cfg.image_url)
            except ProvisionError as exc:
                self.reporter.fatal(str(exc))
            url = cfg.image_url
            self.reporter.info(f"Using custom image URL: {url}")
        else:
            try:
                url, filename = resolve_guest_image(cfg.guest_os, cfg.guest_version, cfg.guest_arch)
            except UnknownArchitectureError as exc:
                self.reporter.fatal(str(exc))
            self.reporter.info(f"Using image URL: {url}")
        self.image = ResolvedArtifact(url, filename, cfg.work_dir)

    def fetch_guest_image(self) -> None:
        image = self._require_image()
        self.reporter.info(f"Downloading {self.cfg.guest_os} image from {image.url}")
        self.fetcher.fetch(image.url, image.install_root / image.filename)

    def launch_guest(self) -> None:
        image = self._require_image()
        cfg = self.cfg
        self.reporter.info("Starting VM")
        args = " ".join(shlex.quote(arg) for arg in (cfg.guest_driver, cfg.guest_os, cfg.guest_arch, image.filename))
        self._run(
            f"elixir -no-halt {args}",
            self.environment,
            success="VM started successfully.",
            failure="Error starting VM",
            cwd=image.install_root,
        )

    # --- helpers -----------------------------------------------------------

    def _require_image(self) -> ResolvedArtifact:
        if self.image is None:
            raise ProvisionError("Guest image has not been resolved")
        return self.image

    def _run(self, command: str, overlay: Optional[EnvironmentOverlay] = None, **kwargs) -> StageResult:
        result = self.runner.run(command, overlay, **kwargs)
        self.results.append((self.state, result))
        return result

    @staticmethod
    def _is_installed(root: Path) -> bool:
        return (root / INSTALLED_MARKER_NAME).exists()

    @staticmethod
    def _mark_installed(root: Path) -> None:
        if not root.is_dir():
            log("WARN", f"{root} was not created by the unpack step; not marking it installed")
            return
        (root / INSTALLED_MARKER_NAME).touch()


def _extract_command(root: Path, archive: Path, strip_components: int = 0) -> str:
    target = shlex.quote(str(root))
    command = f"mkdir -p {target} && tar -C {target} -xzf {shlex.quote(str(archive))}"
    if strip_components:
        command += f" --strip-components {strip_components}"
    return command
