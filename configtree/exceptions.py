"""
Custom Exception Hierarchy for the configuration tree client

Provides structured exceptions so callers can tell a dead connection apart
from a garbled frame or a bad value. All custom exceptions inherit from
ConfigTreeError.

A remote ERROR response is not an exception: it is a normal answer meaning
"absent or not applicable" and is returned to the caller as a Response.
"""
from typing import Optional


class ConfigTreeError(Exception):
    """
    Base exception for all client-specific errors.

    Carries a human readable message plus an optional details dict that is
    safe to pass straight into structured log calls.
    """
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ConfigTreeError):
    """Invalid settings or arguments (bad port, malformed node path)."""
    pass


# Protocol and Framing Errors

class ProtocolError(ConfigTreeError):
    """
    The byte stream does not follow the wire format.

    The protocol has no resynchronization markers, so the connection that
    produced this error must be closed and reopened.
    """
    pass


class FrameEncodeError(ProtocolError):
    """Request cannot be represented as a frame (too long, unencodable text)."""
    pass


class UnknownActionError(ProtocolError):
    """Response action byte does not match any known action code."""
    def __init__(self, code: int):
        super().__init__(f"Unknown action code {code}", {"code": code})
        self.code = code


class UnknownValueTypeError(ProtocolError, TypeError):
    """
    Response type byte does not map to a known value type.

    Only raised after the whole frame was read, so the stream is still in
    sync; callers treat the response as a failed lookup.
    """
    def __init__(self, code: int, response=None):
        super().__init__(f"Unknown value type code {code}", {"code": code})
        self.code = code
        self.response = response


class MessageLengthError(ProtocolError):
    """Response message length field is inconsistent or over the frame limit."""
    pass


# Network and Transport Errors

class ConnectionError(ConfigTreeError):
    """
    Connection to the configuration server failed or was lost.

    Fatal for the session: the transport is torn down and no retry happens
    inside the client.
    """
    pass


class ConnectionRefusedError(ConnectionError):
    """Server actively refused the connection (ECONNREFUSED)."""
    pass


class ConnectionTimeoutError(ConnectionError):
    """Connection attempt timed out."""
    pass


class ConnectionClosedError(ConnectionError):
    """Peer closed the stream before the expected bytes were transferred."""
    pass


class NotConnectedError(ConnectionError):
    """Operation attempted on a transport that is closed."""
    pass


class SendError(ConnectionError):
    """Failed to write a request frame."""
    pass


class ReceiveError(ConnectionError):
    """Failed to read a response frame."""
    pass


class ReceiveTimeoutError(ReceiveError):
    """No data within the configured I/O deadline (stalled peer)."""
    pass


# Value Conversion Errors

class ValueFormatError(ConfigTreeError, ValueError):
    """Text is not a valid representation of the claimed value type."""
    def __init__(self, message: str, value_type=None, text: Optional[str] = None):
        super().__init__(message, {"value_type": getattr(value_type, "name", value_type), "text": text})
        self.value_type = value_type
        self.text = text
