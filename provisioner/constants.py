"""Global constants, URL templates and lookup tables for vm-provisioner."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import NamedTuple

DEFAULT_CONFIG_PATH = Path("provision.yaml")

DEFAULT_OTP_VERSION = "26.2.1"
DEFAULT_ELIXIR_VERSION = "1.16.0"
DEFAULT_QEMU_VERSION = "8.2.0"
DEFAULT_GUEST_OS = "freebsd"
DEFAULT_GUEST_VERSION = "latest"
DEFAULT_GUEST_ARCH = "amd64"
DEFAULT_GUEST_DRIVER = "qemu.exs"

DEFAULT_SCRATCH_DIR = Path("/tmp")
DOWNLOADS_SUBDIR = "downloads"
INSTALLED_MARKER_NAME = ".provisioned"

TRUTHY = {"1", "true", "yes", "on"}
VERSION_RE = re.compile(r"^[0-9A-Za-z][0-9A-Za-z._+-]*$")

# Precompiled toolchain archives
OTP_URL_TEMPLATE = "https://github.com/cocoa-xu/otp-build/releases/download/v{version}/{filename}"
ELIXIR_URL_TEMPLATE = "https://github.com/elixir-lang/elixir/archive/refs/tags/v{version}.tar.gz"
QEMU_URL_TEMPLATE = "https://github.com/cocoa-xu/qemu-build/releases/download/v{version}/{filename}"

RUNTIME_TRIPLETS = {
    "linux": "{arch}-linux-gnu",
    "darwin": "{arch}-apple-darwin",
}

# Hosted runners only ship one architecture per OS
FORCED_HOST_ARCH = {"linux": "x86_64"}
UNSUPPORTED_HOSTS = {
    "win32": "Windows is not supported yet.",
    "darwin": "macOS is not supported yet.",
}
HYPERVISOR_TRIPLET = "x86_64-linux-gnu"

# FreeBSD VM images
FREEBSD_RELEASES_BASE = "https://download.freebsd.org/releases/VM-IMAGES/{version}-RELEASE"
FREEBSD_ARCHIVE_BASE = "http://ftp-archive.freebsd.org/pub/FreeBSD-Archive/old-releases/VM-IMAGES/{version}-RELEASE"
FREEBSD_LATEST_SUBDIR = "Latest"
CURRENT_GUEST_RELEASES = frozenset({"14.0", "13.2", "12.4"})
GUEST_VERSION_ALIASES = {"latest": "14.0"}


class GuestArch(NamedTuple):
    url_arch: str
    os_arch: str  # empty when the upstream filename has no separate OS token
    instruction_set: str


GUEST_ARCH_ALIASES = {
    "amd64": GuestArch("amd64", "", "amd64"),
    "x86_64": GuestArch("amd64", "", "amd64"),
    "i386": GuestArch("i386", "", "i386"),
    "aarch64": GuestArch("aarch64", "arm64", "aarch64"),
    "riscv64": GuestArch("riscv64", "riscv", "riscv64"),
}

# Runtime install layout inside the extracted OTP archive
OTP_BIN_SUBDIR = "usr/local/bin"
OTP_ROOT_SUBDIR = "usr/local/lib/erlang"
ROOT_DIR_VARIABLE = "ERL_ROOTDIR"

FETCH_BACKENDS = {"curl", "urllib"}

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in {"1", "true", "yes", "on"}
