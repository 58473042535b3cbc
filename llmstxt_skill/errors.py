"""Exception hierarchy for the index pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class LlmsTxtError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgumentError(LlmsTxtError):
    """Raised for bad usage or malformed URLs, before any I/O happens."""


class NetworkErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    CONNECTION = "connection"


class NetworkError(LlmsTxtError):
    """Raised when a request fails at the transport or HTTP level."""

    def __init__(
        self,
        message: str,
        kind: NetworkErrorKind = NetworkErrorKind.CONNECTION,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_timeout(self) -> bool:
        return self.kind is NetworkErrorKind.TIMEOUT


class ParseError(LlmsTxtError):
    """Raised when content does not match the expected index format."""


class FilesystemError(LlmsTxtError):
    """Raised when a destination is missing, unwritable or a write fails."""
