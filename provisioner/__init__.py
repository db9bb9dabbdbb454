"""vm-provisioner package."""

__all__ = [
    "cli",
    "config",
    "constants",
    "environment",
    "exceptions",
    "fetcher",
    "locator",
    "models",
    "reporter",
    "runner",
    "stages",
    "utils",
]
