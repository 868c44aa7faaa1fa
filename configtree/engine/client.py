"""
Protocol Client - One synchronous request/response call over a transport

Owns the connection exclusively. The protocol is half-duplex: a request is
written, then its full response is read, before the next request may start.
"""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional

import structlog

from configtree.engine.codec import (
    RESPONSE_HEADER_SIZE,
    decode_response,
    decode_response_header,
    encode_request,
)
from configtree.engine.transport import SocketTransport
from configtree.exceptions import (
    ConnectionError,
    NotConnectedError,
    ProtocolError,
    UnknownValueTypeError,
)
from configtree.models import Request, Response

logger = structlog.get_logger()


class ProtocolClient:
    """
    Executes requests against one configuration server connection.

    A lock serializes execute() so the response of one call is fully
    drained before another request is written, even when several threads
    share the client.
    """

    def __init__(self, transport: SocketTransport):
        self._transport: Optional[SocketTransport] = transport
        self._lock = threading.Lock()
        # close() may run from another thread while execute() holds _lock
        self._close_lock = threading.Lock()

        # Statistics
        self.request_count: int = 0
        self.error_count: int = 0
        self.last_request: Optional[datetime] = None

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        connect_timeout_ms: Optional[int] = None,
        io_timeout_ms: Optional[int] = None,
    ) -> "ProtocolClient":
        transport = SocketTransport.connect(
            host,
            port,
            connect_timeout_ms=connect_timeout_ms,
            io_timeout_ms=io_timeout_ms,
        )
        logger.info("client_connected", host=host, port=port)
        return cls(transport)

    @property
    def connected(self) -> bool:
        return self._transport is not None and self._transport.connected

    @property
    def host(self) -> str:
        return self._transport.host if self._transport else ""

    @property
    def port(self) -> int:
        return self._transport.port if self._transport else 0

    def execute(self, request: Request) -> Response:
        """
        Send one request and read its response.

        Raises:
            FrameEncodeError: Request cannot be framed (connection untouched)
            ConnectionError: Transport failed; the client is closed
            UnknownValueTypeError: Type byte unknown; frame was drained, the
                connection remains usable
            ProtocolError: Any other framing violation; the client is closed
        """
        with self._lock:
            transport = self._transport
            if transport is None or not transport.connected:
                raise NotConnectedError("Client is not connected")

            frame = encode_request(request)

            try:
                transport.write_all(frame)
                header = transport.read_exact(RESPONSE_HEADER_SIZE)
                _, _, length = decode_response_header(header)
                message = transport.read_exact(length)
                response = decode_response(header + message)
            except UnknownValueTypeError:
                # Frame fully consumed; still a completed round trip
                self.request_count += 1
                self.error_count += 1
                raise
            except ConnectionError as e:
                self.error_count += 1
                logger.error(
                    "request_failed",
                    action=request.action.name,
                    node_path=request.node_path,
                    error=e.message,
                )
                self.close()
                raise
            except ProtocolError as e:
                self.error_count += 1
                logger.error(
                    "response_malformed",
                    action=request.action.name,
                    node_path=request.node_path,
                    error=e.message,
                    details=e.details,
                )
                self.close()
                raise

            self.request_count += 1
            self.last_request = datetime.utcnow()

        logger.debug(
            "request_executed",
            action=request.action.name,
            node_path=request.node_path,
            key=request.key,
            response_action=response.action.name,
            response_type=response.type.name,
            message_length=len(response.message),
        )
        return response

    def close(self) -> None:
        """Close the connection. Idempotent and safe to call from any thread."""
        with self._close_lock:
            transport, self._transport = self._transport, None
        if transport is None:
            return

        transport.close()
        logger.info(
            "client_closed",
            host=transport.host,
            port=transport.port,
            request_count=self.request_count,
            bytes_sent=transport.bytes_sent,
            bytes_received=transport.bytes_received,
        )

    def __enter__(self) -> "ProtocolClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
