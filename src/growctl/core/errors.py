"""Exceptions raised by the grow controller client."""

from __future__ import annotations


class GrowControllerError(Exception):
    """Base class for all client errors."""


class TransportError(GrowControllerError):
    """The request never produced a response (network failure or timeout)."""


class HttpError(GrowControllerError):
    """The device answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        target = f" from {url}" if url else ""
        super().__init__(f"HTTP {status_code}{target}")


class ProtocolError(GrowControllerError):
    """The device answered, but the payload could not be decoded."""


class ValidationError(GrowControllerError, ValueError):
    """Arguments were rejected before anything was sent to the device."""
