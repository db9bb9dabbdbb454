"""Download location resolvers for toolchain archives and guest images.

Every function here is pure: the same arguments always produce the same
``(url, filename)`` pair, which is what lets the fetcher skip artifacts that
are already on disk.
"""

from __future__ import annotations

import posixpath
from typing import Callable, Dict, Tuple
from urllib.parse import urlparse

from provisioner.constants import (
    CURRENT_GUEST_RELEASES,
    ELIXIR_URL_TEMPLATE,
    FREEBSD_ARCHIVE_BASE,
    FREEBSD_LATEST_SUBDIR,
    FREEBSD_RELEASES_BASE,
    GUEST_ARCH_ALIASES,
    GUEST_VERSION_ALIASES,
    HYPERVISOR_TRIPLET,
    OTP_URL_TEMPLATE,
    QEMU_URL_TEMPLATE,
    RUNTIME_TRIPLETS,
)
from provisioner.exceptions import (
    ProvisionError,
    UnknownArchitectureError,
    UnsupportedPlatformError,
)
from provisioner.models import ComponentSpec

Resolved = Tuple[str, str]


def resolve_runtime_url(version: str, os: str, arch: str) -> Resolved:
    """Precompiled Erlang/OTP archive for ``os``/``arch``."""
    template = RUNTIME_TRIPLETS.get(os)
    if template is None:
        raise UnsupportedPlatformError(f"Unsupported operating system: {os}")
    triplet = template.format(arch=arch)
    filename = f"otp-{triplet}.tar.gz"
    return OTP_URL_TEMPLATE.format(version=version, filename=filename), filename


def resolve_compiler_source_url(version: str) -> Resolved:
    """Elixir source tarball for a release tag; built locally, so no os/arch."""
    return ELIXIR_URL_TEMPLATE.format(version=version), f"elixir-{version}.tar.gz"


def resolve_hypervisor_url(version: str) -> Resolved:
    filename = f"qemu-{HYPERVISOR_TRIPLET}.tar.gz"
    return QEMU_URL_TEMPLATE.format(version=version, filename=filename), filename


def resolve_guest_image_url(version: str, arch: str) -> Resolved:
    """FreeBSD qcow2 image for ``version``/``arch``.

    Current releases live under the releases mirror in a ``Latest``
    subdirectory; anything else is looked up on the archive mirror.
    Raises :class:`UnknownArchitectureError` for an unmapped ``arch``.
    """
    version = GUEST_VERSION_ALIASES.get(version, version)
    if version in CURRENT_GUEST_RELEASES:
        base_url = FREEBSD_RELEASES_BASE.format(version=version)
        subdir = FREEBSD_LATEST_SUBDIR
    else:
        base_url = FREEBSD_ARCHIVE_BASE.format(version=version)
        subdir = ""

    try:
        alias = GUEST_ARCH_ALIASES[arch]
    except KeyError:
        raise UnknownArchitectureError(arch) from None

    os_part = f"{alias.os_arch}-" if alias.os_arch else ""
    filename = f"FreeBSD-{version}-RELEASE-{os_part}{alias.instruction_set}.qcow2.xz"
    subdir_part = f"{subdir}/" if subdir else ""
    return f"{base_url}/{alias.url_arch}/{subdir_part}{filename}", filename


GUEST_IMAGE_RESOLVERS: Dict[str, Callable[[str, str], Resolved]] = {
    "freebsd": resolve_guest_image_url,
}


def resolve_guest_image(os: str, version: str, arch: str) -> Resolved:
    resolver = GUEST_IMAGE_RESOLVERS.get(os)
    if resolver is None:
        raise UnsupportedPlatformError(f"Unknown OS: {os}")
    return resolver(version, arch)


def resolve_component(spec: ComponentSpec) -> Resolved:
    """Resolve a toolchain component by name, or a guest image by OS selector."""
    if spec.name == "otp":
        return resolve_runtime_url(spec.version, spec.os, spec.arch)
    if spec.name == "elixir":
        return resolve_compiler_source_url(spec.version)
    if spec.name == "qemu":
        return resolve_hypervisor_url(spec.version)
    return resolve_guest_image(spec.name, spec.version, spec.arch)


def filename_from_url(url: str) -> str:
    """Last path segment of ``url``, ignoring query string and fragment."""
    name = posixpath.basename(urlparse(url).path)
    if not name:
        raise ProvisionError(f"Cannot derive an image filename from URL: {url}")
    return name


def check_tables() -> None:
    """Fail fast on an incomplete alias or release table."""
    for key, alias in GUEST_ARCH_ALIASES.items():
        if len(alias) != 3 or not alias.url_arch or not alias.instruction_set:
            raise ProvisionError(f"Incomplete guest architecture entry for '{key}': {alias!r}")
    for alias, target in GUEST_VERSION_ALIASES.items():
        if target not in CURRENT_GUEST_RELEASES:
            raise ProvisionError(f"Guest version alias '{alias}' points outside current releases: {target}")
    for os_name in RUNTIME_TRIPLETS:
        if "{arch}" not in RUNTIME_TRIPLETS[os_name]:
            raise ProvisionError(f"Runtime triplet for '{os_name}' does not include the architecture")


check_tables()
