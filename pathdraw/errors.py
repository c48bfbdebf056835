"""
pathdraw: Errors

Fatal errors carry a user-facing message, an optional suggestion and the
process exit code. The one non-fatal condition (no neighbor entry) is a
warning, not an exception: rendering proceeds with a placeholder.
"""

from __future__ import annotations
from enum import IntEnum
from typing import Any, Optional


class ExitCode(IntEnum):
    SUCCESS = 0
    NO_ROUTE = 2
    UNSUPPORTED_PLATFORM = 3
    INVALID_INPUT = 10
    INTERNAL_ERROR = 15


class PathDrawError(Exception):
    """Base class for every fatal pathdraw error."""

    exit_code: ExitCode = ExitCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def format_error(self, verbose: bool = False) -> str:
        lines = [f"Error: {self.message}"]
        if self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")
        if verbose and self.details:
            for key, value in self.details.items():
                lines.append(f"  {key}: {value}")
        return "\n".join(lines)


class InputError(PathDrawError):
    """Identical, mixed-family or malformed source/destination."""

    exit_code = ExitCode.INVALID_INPUT


class RouteNotFoundError(PathDrawError):
    """The route lookup found nothing usable towards an address."""

    exit_code = ExitCode.NO_ROUTE

    def __init__(self, address: str, reason: str = "", **kwargs):
        details = kwargs.pop("details", None) or {}
        details["address"] = address
        if reason:
            details["reason"] = reason
        super().__init__(
            message=f"No route to {address}",
            suggestion=kwargs.pop(
                "suggestion",
                "Check the routing table for a route (or default route) "
                "covering this address.",
            ),
            details=details,
        )
        self.address = address


class UnsupportedPlatformError(PathDrawError):
    """Operating system is neither Linux nor BSD-family."""

    exit_code = ExitCode.UNSUPPORTED_PLATFORM

    def __init__(self, system: str):
        super().__init__(
            message=f"Unsupported operating system: {system or 'unknown'}",
            suggestion="pathdraw runs on Linux and BSD-family systems "
                       "(FreeBSD, OpenBSD, NetBSD, DragonFly, macOS).",
            details={"system": system},
        )
        self.system = system


class UnresolvedNeighborWarning(UserWarning):
    """Neighbor cache has no link-layer address for a next hop."""

    def __init__(self, address: str, interface: Optional[str] = None):
        where = f" on {interface}" if interface else ""
        super().__init__(f"No neighbor entry for {address}{where}")
        self.address = address
        self.interface = interface
