"""Custom exceptions for vm-provisioner."""


class ProvisionError(RuntimeError):
    """Raised on invalid configuration or an unconfigured target."""


class FatalError(ProvisionError):
    """Halts the pipeline; no later stage runs once this is raised."""

    def __init__(self, message: str, reported: bool = False) -> None:
        super().__init__(message)
        self.reported = reported


class UnsupportedPlatformError(FatalError):
    """Raised for an operating system or guest selector with no download recipe."""


class UnknownArchitectureError(ValueError):
    """Raised by the guest image resolver for an architecture missing from the alias table.

    Not a FatalError: callers catch it and decide how to report it.
    """

    def __init__(self, arch: str) -> None:
        super().__init__(f"Unknown architecture: {arch}")
        self.arch = arch
