"""Error codes reported by the Nexus-RV encoder and decoder."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Reasons an encode, decode or stream operation can fail."""

    OK = 0
    FAIL = 1
    BUFFER_TOO_SMALL = 2
    STREAM_BAD_MSEO = 3
    STREAM_TRUNCATE = 4
    STREAM_READ_FAILED = 5
    STREAM_WRITE_FAILED = 6
    MSG_INVALID = 7
    MSG_MISSING_FIELD = 8
    MSG_UNSUPPORTED = 9

    @property
    def description(self) -> str:
        """A short human readable explanation of the code."""
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ErrorCode.OK: "success",
    ErrorCode.FAIL: "failure",
    ErrorCode.BUFFER_TOO_SMALL: "buffer too small to hold a single message",
    ErrorCode.STREAM_BAD_MSEO: "reserved MSEO value in stream",
    ErrorCode.STREAM_TRUNCATE: "stream truncated",
    ErrorCode.STREAM_READ_FAILED: "failed to read from stream",
    ErrorCode.STREAM_WRITE_FAILED: "failed to write to stream",
    ErrorCode.MSG_INVALID: "invalid message",
    ErrorCode.MSG_MISSING_FIELD: "message has missing fields",
    ErrorCode.MSG_UNSUPPORTED: "unsupported message type",
}


class NexusRvError(Exception):
    """Raised when a Nexus-RV operation fails; carries an ErrorCode."""

    def __init__(self, code, message=None):
        self.code = ErrorCode(code)
        super().__init__(message if message is not None else self.code.description)