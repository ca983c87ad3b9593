"""Error taxonomy shared by the coordinator, the store and the answering clients."""

import asyncio
from typing import Optional


class PanelError(Exception):
    """Base class for askpanel errors."""


class ValidationError(PanelError):
    """User input rejected before any state mutation."""


class RemoteError(PanelError):
    """Answering backend call failed (timeout, network, status or payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StorageError(PanelError):
    """State store read or write failed."""


def describe_error(exc: BaseException, timeout: Optional[float] = None) -> str:
    """Normalize any exception into a single user-facing message."""
    if isinstance(exc, asyncio.TimeoutError):
        if timeout is not None:
            return f"Request timed out after {timeout:g} seconds."
        return "Request timed out."
    if isinstance(exc, RemoteError):
        return exc.message
    return str(exc) or exc.__class__.__name__
