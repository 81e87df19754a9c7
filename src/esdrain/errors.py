"""
esdrain Errors — Failure Kinds for Scroll Exports
=================================================

Every failure raised by esdrain is a ScrollError carrying an ErrorKind,
so callers can branch on the kind without inspecting messages:

    MALFORMED_QUERY  the query body does not parse (never retried)
    BACKEND          the backend reported an error in its payload
    PROTOCOL         the response lacks an expected field or shape
    TRANSPORT        connection, timeout or undecodable body
    RELEASE          clearing the scroll cursor did not succeed

The original exception, when there is one, is kept on ``cause``.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Classification of scroll export failures."""

    MALFORMED_QUERY = "malformed_query"
    BACKEND = "backend"
    PROTOCOL = "protocol"
    TRANSPORT = "transport"
    RELEASE = "release"


class ScrollError(Exception):
    """Base error for all scroll export operations."""

    kind = ErrorKind.BACKEND

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def retryable(self) -> bool:
        """Whether a scroll continuation may be retried after this error."""
        return self.kind in (ErrorKind.BACKEND, ErrorKind.PROTOCOL, ErrorKind.TRANSPORT)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, kind={self.kind.value!r})"


class MalformedQuery(ScrollError):
    """The caller-supplied query body is not a JSON object."""

    kind = ErrorKind.MALFORMED_QUERY


class BackendError(ScrollError):
    """The backend accepted the request but reported an error."""

    kind = ErrorKind.BACKEND

    def __init__(
        self,
        message: str,
        error: Any = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message, cause=cause)
        self.error = error


class ProtocolViolation(ScrollError):
    """A response is missing the scroll id, the hits array, or has a bad total."""

    kind = ErrorKind.PROTOCOL


class TransportFailure(ScrollError):
    """Network, timeout or serialization failure talking to the backend."""

    kind = ErrorKind.TRANSPORT


class ReleaseFailure(ScrollError):
    """Clearing a scroll cursor failed. Reported, never fatal to an export."""

    kind = ErrorKind.RELEASE

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message, cause=cause)
        self.status = status
