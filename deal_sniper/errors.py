from __future__ import annotations


class DealSniperError(RuntimeError):
    """Base class for errors that abort a run."""


class ArgumentError(DealSniperError, ValueError):
    """Invalid command line arguments."""


class SessionError(DealSniperError):
    """Flight data backend failed or returned an error."""


class ScanError(DealSniperError):
    """Backend answered, but without the data the scan needs."""


__all__ = ["DealSniperError", "ArgumentError", "SessionError", "ScanError"]
