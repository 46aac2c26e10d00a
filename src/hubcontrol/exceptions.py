"""Exception hierarchy for USB topology discovery."""

from __future__ import annotations


class HubControlError(Exception):
    """Base exception for all hubcontrol errors."""


class DiscoveryError(HubControlError):
    """The USB enumeration command failed or is not installed."""

    def __init__(self, message: str, command: list[str] | None = None) -> None:
        self.command = command or []
        super().__init__(message)


class DiscoveryTimeoutError(DiscoveryError):
    """The USB enumeration command did not finish in time."""
