"""Configuration loading and input parsing for vm-provisioner."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from provisioner.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_ELIXIR_VERSION,
    DEFAULT_GUEST_ARCH,
    DEFAULT_GUEST_DRIVER,
    DEFAULT_GUEST_OS,
    DEFAULT_GUEST_VERSION,
    DEFAULT_OTP_VERSION,
    DEFAULT_QEMU_VERSION,
    DEFAULT_SCRATCH_DIR,
    FETCH_BACKENDS,
    VERSION_RE,
)
from provisioner.exceptions import ProvisionError
from provisioner.models import ProvisionConfig
from provisioner.utils import get_env, get_input, log

# Input name -> (YAML section, YAML key)
_FILE_KEYS = {
    "otp_version": ("toolchain", "otp"),
    "elixir_version": ("toolchain", "elixir"),
    "qemu_version": ("toolchain", "qemu"),
    "os": ("guest", "os"),
    "version": ("guest", "version"),
    "arch": ("guest", "arch"),
    "os_image_url": ("guest", "image_url"),
}


def load_config_file(config_path: Optional[Path] = None) -> Dict[str, str]:
    """Flatten a ``provision.yaml`` into input names.

    A missing default file is not an error; a missing explicit file is.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if explicit:
            raise ProvisionError(f"Provision config missing: {config_path}")
        return {}
    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ProvisionError(f"{config_path} contains invalid YAML: {exc}")
    if not isinstance(data, dict):
        raise ProvisionError(f"{config_path} must contain a YAML mapping, got {type(data).__name__}")

    values: Dict[str, str] = {}
    for name, (section, key) in _FILE_KEYS.items():
        block: Any = data.get(section) or {}
        if not isinstance(block, dict):
            raise ProvisionError(f"'{section}' in {config_path} must be a mapping")
        if block.get(key) is not None:
            values[name] = str(block[key]).strip()
    unknown = sorted(set(data) - {section for section, _ in _FILE_KEYS.values()})
    if unknown:
        log("WARN", f"Ignoring unknown sections in {config_path}: {', '.join(unknown)}")
    return values


def _validate_version(label: str, raw: str) -> str:
    if not VERSION_RE.match(raw):
        raise ProvisionError(f"Invalid {label} '{raw}'")
    return raw


def parse_env(config_path: Optional[Path] = None) -> ProvisionConfig:
    file_values = load_config_file(config_path)

    def setting(name: str, default: Optional[str]) -> Optional[str]:
        value = get_input(name)
        if value is not None:
            return value
        return file_values.get(name, default)

    otp_version = _validate_version("OTP version", setting("otp_version", DEFAULT_OTP_VERSION) or "")
    elixir_version = _validate_version("Elixir version", setting("elixir_version", DEFAULT_ELIXIR_VERSION) or "")
    qemu_version = _validate_version("QEMU version", setting("qemu_version", DEFAULT_QEMU_VERSION) or "")

    image_url = setting("os_image_url", None)
    if image_url and not image_url.startswith(("http://", "https://")):
        raise ProvisionError(f"os_image_url must be an http(s) URL (got '{image_url}')")

    guest_os = (setting("os", DEFAULT_GUEST_OS) or "").lower()
    guest_version = _validate_version("guest version", setting("version", DEFAULT_GUEST_VERSION) or "")
    guest_arch = (setting("arch", DEFAULT_GUEST_ARCH) or "").lower()

    fetch_backend = (get_env("FETCH_BACKEND") or "curl").strip().lower()
    if fetch_backend not in FETCH_BACKENDS:
        supported = ", ".join(sorted(FETCH_BACKENDS))
        raise ProvisionError(f"Unsupported FETCH_BACKEND '{fetch_backend}'. Supported: {supported}")

    scratch_raw = get_env("SCRATCH_DIR")
    scratch_dir = Path(scratch_raw).expanduser() if scratch_raw else DEFAULT_SCRATCH_DIR
    work_dir = Path(get_env("WORK_DIR") or ".").expanduser()
    guest_driver = (get_env("GUEST_DRIVER") or DEFAULT_GUEST_DRIVER).strip()

    return ProvisionConfig(
        otp_version=otp_version,
        elixir_version=elixir_version,
        qemu_version=qemu_version,
        guest_os=guest_os,
        guest_version=guest_version,
        guest_arch=guest_arch,
        image_url=image_url,
        scratch_dir=scratch_dir,
        work_dir=work_dir,
        guest_driver=guest_driver,
        fetch_backend=fetch_backend,
        config_path=config_path,
    )
