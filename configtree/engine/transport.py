"""
Transport - Blocking byte stream over one persistent TCP connection

Provides write_all/read_exact with short-write/short-read retry loops.
Partial transfers are normal; only a closed stream, an I/O error or an
expired deadline are failures, and each of those closes the transport.
"""
from __future__ import annotations

import socket
from datetime import datetime
from typing import Optional

import structlog

from configtree.exceptions import (
    ConnectionClosedError,
    ConnectionError,
    ConnectionRefusedError as ConfigConnectionRefusedError,
    ConnectionTimeoutError,
    NotConnectedError,
    ReceiveError,
    ReceiveTimeoutError,
    SendError,
)

logger = structlog.get_logger()


def _timeout_sec(timeout_ms: Optional[int]) -> Optional[float]:
    if not timeout_ms:
        return None
    return timeout_ms / 1000.0


class SocketTransport:
    """
    Duplex byte stream over a connected socket.

    Accepts any object with send/recv/close so tests can feed it a stream
    that only moves a few bytes per call.
    """

    def __init__(
        self,
        sock,
        host: str = "",
        port: int = 0,
        io_timeout_ms: Optional[int] = None,
    ):
        self.host = host
        self.port = port
        self._sock = sock
        self._connected = sock is not None

        if sock is not None and hasattr(sock, "settimeout"):
            sock.settimeout(_timeout_sec(io_timeout_ms))

        # Statistics
        self.created_at: datetime = datetime.utcnow()
        self.bytes_sent: int = 0
        self.bytes_received: int = 0

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        connect_timeout_ms: Optional[int] = None,
        io_timeout_ms: Optional[int] = None,
    ) -> "SocketTransport":
        """Open a TCP connection to host:port."""
        try:
            sock = socket.create_connection((host, port), timeout=_timeout_sec(connect_timeout_ms))
        except socket.timeout:
            raise ConnectionTimeoutError(
                f"Connection timeout to {host}:{port}",
                details={"timeout_ms": connect_timeout_ms},
            )
        except ConnectionRefusedError as e:
            raise ConfigConnectionRefusedError(
                f"Connection refused by {host}:{port}",
                details={"error": str(e)},
            )
        except OSError as e:
            raise ConnectionError(
                f"Failed to connect to {host}:{port}: {e}",
                details={"error": str(e)},
            )

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        logger.debug("transport_connected", host=host, port=port)
        return cls(sock, host=host, port=port, io_timeout_ms=io_timeout_ms)

    @property
    def connected(self) -> bool:
        return self._connected and self._sock is not None

    def write_all(self, data: bytes) -> None:
        """Write every byte of data, looping over short writes."""
        if not self.connected:
            raise NotConnectedError("Not connected")

        sock = self._sock
        view = memoryview(data)
        sent = 0
        while sent < len(data):
            try:
                count = sock.send(view[sent:])
            except socket.timeout:
                self.close()
                raise ConnectionTimeoutError(
                    f"Send timeout to {self.host}:{self.port}",
                    details={"sent": sent, "data_size": len(data)},
                )
            except OSError as e:
                self.close()
                raise SendError(
                    f"Failed to send data to {self.host}:{self.port}",
                    details={"error": str(e), "sent": sent, "data_size": len(data)},
                )

            if count == 0:
                self.close()
                raise ConnectionClosedError(
                    "Connection closed by peer during send",
                    details={"sent": sent, "data_size": len(data)},
                )
            sent += count

        self.bytes_sent += sent

    def read_exact(self, size: int) -> bytes:
        """Read exactly size bytes, looping over short reads."""
        if not self.connected:
            raise NotConnectedError("Not connected")

        sock = self._sock
        buffer = bytearray()
        while len(buffer) < size:
            try:
                chunk = sock.recv(size - len(buffer))
            except socket.timeout:
                self.close()
                raise ReceiveTimeoutError(
                    f"Receive timeout from {self.host}:{self.port}",
                    details={"received": len(buffer), "expected": size},
                )
            except OSError as e:
                self.close()
                raise ReceiveError(
                    f"Failed to receive data from {self.host}:{self.port}",
                    details={"error": str(e), "received": len(buffer), "expected": size},
                )

            if not chunk:
                self.close()
                raise ConnectionClosedError(
                    "Connection closed by peer",
                    details={"received": len(buffer), "expected": size},
                )
            buffer.extend(chunk)

        self.bytes_received += size
        return bytes(buffer)

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._sock is None:
            return

        sock, self._sock = self._sock, None
        self._connected = False
        try:
            # Wakes up a read or write blocked in another thread
            if hasattr(sock, "shutdown"):
                sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # ENOTCONN once the peer already hung up
            logger.debug("transport_shutdown_skipped", host=self.host, port=self.port, error=str(e))
        try:
            sock.close()
        except OSError as e:
            logger.warning(
                "transport_close_error",
                host=self.host,
                port=self.port,
                error=str(e),
            )
        logger.debug(
            "transport_closed",
            host=self.host,
            port=self.port,
            bytes_sent=self.bytes_sent,
            bytes_received=self.bytes_received,
        )
