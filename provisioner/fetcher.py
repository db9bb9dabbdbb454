"""Idempotent artifact downloads for vm-provisioner."""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from provisioner.exceptions import ProvisionError
from provisioner.reporter import Reporter
from provisioner.utils import ensure_directory, log, run

Transfer = Callable[[str, Path], int]

# curl's "command not found" status, mirrored for a missing binary
_NOT_FOUND = 127
_CHUNK_SIZE = 256 * 1024


def curl_transfer(url: str, destination: Path) -> int:
    """Download with ``curl -fSL``; the file only appears at ``destination`` on success."""
    partial = destination.with_name(destination.name + ".part")
    try:
        result = run(["curl", "-fSL", url, "-o", str(partial)])
    except FileNotFoundError:
        log("ERROR", "curl not found on PATH")
        return _NOT_FOUND
    if result.returncode != 0:
        partial.unlink(missing_ok=True)
        return result.returncode
    partial.replace(destination)
    return 0


def _print_progress(downloaded: int, total_bytes: Optional[int], started: float) -> None:
    mib = 1024 * 1024
    elapsed = time.time() - started
    rate = downloaded / elapsed / mib if elapsed > 0 else 0.0
    if not total_bytes:
        print(f"\r  {downloaded / mib:.1f} MiB downloaded", end="", flush=True)
        return
    width = 30
    filled = int(width * downloaded / total_bytes)
    bar = "#" * filled + "-" * (width - filled)
    print(
        f"\r  [{bar}] {downloaded * 100 / total_bytes:5.1f}% "
        f"{downloaded / mib:.1f}/{total_bytes / mib:.1f} MiB ({rate:.1f} MiB/s)",
        end="",
        flush=True,
    )


def download_file(url: str, destination: Path) -> None:
    """Stream ``url`` into ``destination`` through a temporary file.

    No timeout is applied; a stalled transfer blocks until the process is
    terminated, matching the curl backend.
    """
    request = Request(url, headers={"User-Agent": "vm-provisioner/1.0"})
    try:
        with urlopen(request) as response:
            length = response.headers.get("Content-Length")
            total_bytes = int(length) if length else None
            downloaded = 0
            started = time.time()
            with tempfile.NamedTemporaryFile(delete=False, dir=destination.parent) as tmp:
                tmp_path = Path(tmp.name)
                try:
                    for chunk in iter(lambda: response.read(_CHUNK_SIZE), b""):
                        tmp.write(chunk)
                        downloaded += len(chunk)
                        _print_progress(downloaded, total_bytes, started)
                    print(flush=True)
                except Exception:
                    tmp.close()
                    tmp_path.unlink(missing_ok=True)
                    raise
    except HTTPError as exc:
        raise ProvisionError(f"HTTP error downloading {url}: {exc.code} {exc.reason}")
    except URLError as exc:
        raise ProvisionError(f"Failed to download {url}: {exc.reason}")
    tmp_path.replace(destination)
    log("DEBUG", f"Fetched {destination.name}: {downloaded / (1024 * 1024):.1f} MiB")


def urllib_transfer(url: str, destination: Path) -> int:
    try:
        download_file(url, destination)
    except ProvisionError as exc:
        log("ERROR", str(exc))
        return 1
    except OSError as exc:
        log("ERROR", f"Failed to write {destination}: {exc}")
        return 1
    return 0


TRANSFER_BACKENDS = {
    "curl": curl_transfer,
    "urllib": urllib_transfer,
}


class Fetcher:
    """Download a URL to a path unless something is already there.

    Presence of the destination is the only cache check: an existing file is
    reused as-is, without comparing size or content.
    """

    def __init__(self, reporter: Reporter, transfer: Optional[Transfer] = None) -> None:
        self.reporter = reporter
        self.transfer = transfer or curl_transfer

    def fetch(self, url: str, destination: Path) -> Path:
        if os.path.exists(destination):
            self.reporter.info(f"File {destination} already exists, skipping.")
            return destination

        ensure_directory(destination.parent)
        status = self.transfer(url, destination)
        if status != 0:
            self.reporter.fatal(f"Error downloading the file. Exit code: {status}")
        self.reporter.info("File downloaded successfully.")
        return destination
