"""
Wire Codec - Conversion between request/response frames and bytes

Request frame (all integers little-endian):
    action (1) | type (1) | reserved (2) | node_len (2) | key_len (2) | value_len (2)
    followed by node_path NUL, key NUL, value NUL (each only if present).

Response frame:
    action (1) | type (1) | message_len (2) | message (message_len bytes, NUL terminated)

Pure functions, no I/O. Numeric codes for Action/ValueType only exist here.
"""
import struct
from typing import Optional, Tuple

import structlog

from configtree.exceptions import (
    FrameEncodeError,
    MessageLengthError,
    ProtocolError,
    UnknownActionError,
    UnknownValueTypeError,
)
from configtree.models import Action, Request, Response, ValueType

logger = structlog.get_logger()

REQUEST_HEADER_FMT = "<BBHHHH"
REQUEST_HEADER_SIZE = 10
RESPONSE_HEADER_FMT = "<BBH"
RESPONSE_HEADER_SIZE = 4

# Server side buffer limit, applies to whole frames in both directions
MAX_FRAME_SIZE = 4096
MAX_MESSAGE_SIZE = MAX_FRAME_SIZE - RESPONSE_HEADER_SIZE

# One byte per character, no multi-byte escaping
WIRE_ENCODING = "latin-1"

# Type byte when the request carries no type. Same value as BOOL's code.
NO_TYPE_CODE = 0
UNKNOWN_TYPE_CODE = 0xFF

# Actions whose request type byte carries meaning
TYPED_ACTIONS = frozenset({Action.ATTR_EXISTS, Action.GET, Action.PUT})


def type_to_code(value_type: Optional[ValueType]) -> int:
    if value_type is None:
        return NO_TYPE_CODE
    if value_type is ValueType.UNKNOWN:
        return UNKNOWN_TYPE_CODE
    return int(value_type)


def code_to_type(code: int) -> ValueType:
    """Map a wire type byte to ValueType; 0xFF is UNKNOWN."""
    if code == UNKNOWN_TYPE_CODE:
        return ValueType.UNKNOWN
    try:
        return ValueType(code)
    except ValueError:
        raise UnknownValueTypeError(code)


def code_to_action(code: int) -> Action:
    try:
        return Action(code)
    except ValueError:
        raise UnknownActionError(code)


def _encode_field(name: str, text: Optional[str]) -> bytes:
    if text is None:
        return b""
    try:
        raw = text.encode(WIRE_ENCODING)
    except UnicodeEncodeError as e:
        raise FrameEncodeError(
            f"Field '{name}' is not representable one byte per character",
            details={"field": name, "error": str(e)},
        )
    if b"\0" in raw:
        raise FrameEncodeError(f"Field '{name}' contains a NUL byte", details={"field": name})
    return raw + b"\0"


def encode_request(request: Request) -> bytes:
    """
    Serialize a request into a single frame.

    Raises:
        FrameEncodeError: If the action is ERROR, a field cannot be encoded,
            or the frame would exceed MAX_FRAME_SIZE
    """
    if request.action is Action.ERROR:
        raise FrameEncodeError("ERROR is a response-only action")

    node = _encode_field("node_path", request.node_path)
    key = _encode_field("key", request.key)
    value = _encode_field("value", request.value)

    total = REQUEST_HEADER_SIZE + len(node) + len(key) + len(value)
    if total > MAX_FRAME_SIZE:
        raise FrameEncodeError(
            f"Request frame of {total} bytes exceeds {MAX_FRAME_SIZE}",
            details={"frame_size": total, "limit": MAX_FRAME_SIZE},
        )

    header = struct.pack(
        REQUEST_HEADER_FMT,
        int(request.action),
        type_to_code(request.type),
        0,  # reserved
        len(node),
        len(key),
        len(value),
    )
    return header + node + key + value


def _decode_field(payload: bytes, offset: int, length: int, name: str) -> Tuple[Optional[str], int]:
    if length == 0:
        return None, offset
    end = offset + length
    if end > len(payload):
        raise ProtocolError(f"Field '{name}' runs past end of frame", {"field": name, "length": length})
    raw = payload[offset:end]
    if not raw.endswith(b"\0"):
        raise ProtocolError(f"Field '{name}' is not NUL terminated", {"field": name})
    return raw[:-1].decode(WIRE_ENCODING), end


def decode_request_header(header: bytes) -> Tuple[int, int, int, int, int]:
    """Unpack (action, type, node_len, key_len, value_len); reserved is ignored."""
    if len(header) < REQUEST_HEADER_SIZE:
        raise ProtocolError(f"Request header needs {REQUEST_HEADER_SIZE} bytes, got {len(header)}")
    action, type_code, _reserved, node_len, key_len, value_len = struct.unpack(
        REQUEST_HEADER_FMT, header[:REQUEST_HEADER_SIZE]
    )
    return action, type_code, node_len, key_len, value_len


def decode_request(frame: bytes) -> Request:
    """
    Parse a request frame (server side of the protocol).

    The type byte is only interpreted for actions that carry a type; for the
    others it is reported as absent.
    """
    action_code, type_code, node_len, key_len, value_len = decode_request_header(frame)
    expected = REQUEST_HEADER_SIZE + node_len + key_len + value_len
    if len(frame) != expected:
        raise ProtocolError(
            f"Request frame is {len(frame)} bytes, header announces {expected}",
            {"frame_size": len(frame), "expected": expected},
        )

    action = code_to_action(action_code)
    value_type = code_to_type(type_code) if action in TYPED_ACTIONS else None

    offset = REQUEST_HEADER_SIZE
    node_path, offset = _decode_field(frame, offset, node_len, "node_path")
    key, offset = _decode_field(frame, offset, key_len, "key")
    value, offset = _decode_field(frame, offset, value_len, "value")

    return Request(action=action, node_path=node_path, key=key, type=value_type, value=value)


def encode_response(response: Response) -> bytes:
    """Serialize a response; the message gets its terminating NUL appended."""
    message = response.message.encode(WIRE_ENCODING) + b"\0"
    if len(message) > MAX_MESSAGE_SIZE:
        raise FrameEncodeError(
            f"Response message of {len(message)} bytes exceeds {MAX_MESSAGE_SIZE}",
            details={"message_size": len(message)},
        )
    header = struct.pack(
        RESPONSE_HEADER_FMT, int(response.action), type_to_code(response.type), len(message)
    )
    return header + message


def decode_response_header(header: bytes) -> Tuple[int, int, int]:
    """
    Unpack (action_code, type_code, message_length) from the 4-byte header.

    Codes are returned raw so the caller can drain the message before
    rejecting an unknown code.
    """
    if len(header) != RESPONSE_HEADER_SIZE:
        raise ProtocolError(
            f"Response header needs {RESPONSE_HEADER_SIZE} bytes, got {len(header)}"
        )
    action_code, type_code, length = struct.unpack(RESPONSE_HEADER_FMT, header)
    if length == 0:
        # Even an empty message carries its terminating NUL
        raise MessageLengthError("Message length 0 leaves no room for the NUL terminator", {"message_length": 0})
    if length > MAX_MESSAGE_SIZE:
        raise MessageLengthError(
            f"Message length {length} exceeds {MAX_MESSAGE_SIZE}",
            {"message_length": length},
        )
    return action_code, type_code, length


def decode_message(raw: bytes) -> str:
    """Strip one trailing NUL (if present) and decode."""
    if raw.endswith(b"\0"):
        raw = raw[:-1]
    return raw.decode(WIRE_ENCODING)


def decode_response(frame: bytes) -> Response:
    """
    Parse a complete response frame.

    Raises:
        MessageLengthError: If the frame size disagrees with the header
        UnknownActionError: If the action byte is not a known code
        UnknownValueTypeError: If the type byte is not a known code; the
            exception carries the response with type UNKNOWN
    """
    action_code, type_code, length = decode_response_header(frame[:RESPONSE_HEADER_SIZE])
    if len(frame) != RESPONSE_HEADER_SIZE + length:
        raise MessageLengthError(
            f"Response frame is {len(frame)} bytes, header announces {RESPONSE_HEADER_SIZE + length}",
            {"frame_size": len(frame), "message_length": length},
        )

    action = code_to_action(action_code)
    message = decode_message(frame[RESPONSE_HEADER_SIZE:])

    try:
        value_type = code_to_type(type_code)
    except UnknownValueTypeError as e:
        e.response = Response(action=action, type=ValueType.UNKNOWN, message=message)
        logger.debug("response_unknown_type", action=action.name, type_code=type_code)
        raise

    return Response(action=action, type=value_type, message=message)
