# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Formatting daemon and its client.

A long-lived daemon keeps one Formatter (and so one parser and one set of
compiled queries) alive across requests. The wire format is the same in
both directions::

    uint32, little-endian | payload size in bytes
    byte array            | UTF-8 payload

Each connection carries exactly one request and one response. Connections
are served one at a time in accept order. A truncated frame, invalid UTF-8
or a failed format closes that connection without a response; the server
keeps accepting.
"""

from __future__ import annotations

import asyncio
import struct
from typing import Optional

from returns.result import Failure, Result, Success

from .errors import GdfmtError, TransportError
from .formatter import Formatter
from .logging_jsonl import JsonlLogger

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 27542

FRAME_HEADER = struct.Struct("<I")


def encode_frame(text: str) -> bytes:
    """Encode `text` as one length-prefixed frame."""
    payload = text.encode("utf-8")
    return FRAME_HEADER.pack(len(payload)) + payload


async def read_frame(reader: asyncio.StreamReader) -> Result[str, TransportError]:
    """Read one frame and decode its payload.

    Returns:
        Result[str, TransportError]: The payload text, or an error for a short
        read, a connection error or a payload that is not UTF-8
    """
    try:
        header = await reader.readexactly(FRAME_HEADER.size)
        (length,) = FRAME_HEADER.unpack(header)
        payload = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        return Failure(TransportError(
            message=f"Truncated frame: expected {e.expected} bytes, got {len(e.partial)}",
            operation="read",
            truncated=True
        ))
    except OSError as e:
        return Failure(TransportError(
            message=f"Failed to read frame: {e}",
            operation="read"
        ))

    try:
        return Success(payload.decode("utf-8"))
    except UnicodeDecodeError as e:
        return Failure(TransportError(
            message=f"Frame payload is not valid UTF-8: {e}",
            operation="decode"
        ))


async def write_frame(writer: asyncio.StreamWriter, text: str) -> Result[None, TransportError]:
    """Write `text` as one frame and wait for it to drain."""
    try:
        writer.write(encode_frame(text))
        await writer.drain()
        return Success(None)
    except OSError as e:
        return Failure(TransportError(
            message=f"Failed to write frame: {e}",
            operation="write"
        ))


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass


class DaemonServer:
    """TCP server answering formatting requests with one shared Formatter."""

    def __init__(
        self,
        formatter: Formatter,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        logger: Optional[JsonlLogger] = None,
    ):
        self.formatter = formatter
        self.host = host
        self.port = port
        self.logger = logger
        self._lock = asyncio.Lock()
        self._server: Optional[asyncio.AbstractServer] = None

    async def start(self) -> None:
        """Bind the listening socket.

        With port 0 the system picks a free port; `port` is updated to the
        bound value.
        """
        if self._server is not None:
            raise RuntimeError("Daemon already started")

        self._server = await asyncio.start_server(self.handle_connection, self.host, self.port)
        self.port = self._server.sockets[0].getsockname()[1]
        self._log("daemon_started", host=self.host, port=self.port)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        self._log("daemon_stopped")

    async def __aenter__(self) -> DaemonServer:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter
    ) -> None:
        """Serve one request on a freshly accepted connection."""
        try:
            async with self._lock:
                result = await self._serve_request(reader, writer)
            if isinstance(result, Failure):
                error = result.failure()
                self._log(
                    "daemon_request_failed",
                    error=error.message,
                    error_type=type(error).__name__
                )
        finally:
            await _close_writer(writer)

    async def _serve_request(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter
    ) -> Result[None, GdfmtError]:
        request = await read_frame(reader)
        if isinstance(request, Failure):
            return request

        # Keep the event loop free while the pipeline (and Topiary) run
        formatted = await asyncio.to_thread(self.formatter.format, request.unwrap())
        if isinstance(formatted, Failure):
            return formatted

        outcome = formatted.unwrap()
        for warning in outcome.warnings:
            self._log("daemon_request_warning", warning=warning)

        return await write_frame(writer, outcome.text)

    def _log(self, ev: str, **fields) -> None:
        if self.logger:
            self.logger.event(ev, **fields)


async def request_format_async(
    content: str,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT
) -> Result[str, TransportError]:
    """Send `content` to a running daemon and return the formatted text."""
    try:
        reader, writer = await asyncio.open_connection(host, port)
    except OSError as e:
        return Failure(TransportError(
            message=f"Could not connect to daemon at {host}:{port}: {e}",
            operation="connect"
        ))

    try:
        sent = await write_frame(writer, content)
        if isinstance(sent, Failure):
            return sent
        return await read_frame(reader)
    finally:
        await _close_writer(writer)


def request_format(
    content: str,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT
) -> Result[str, TransportError]:
    """Blocking wrapper around request_format_async."""
    return asyncio.run(request_format_async(content, host, port))


async def run_daemon(
    formatter: Formatter,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    logger: Optional[JsonlLogger] = None,
    on_ready=None,
) -> None:
    """Run a daemon until cancelled.

    Args:
        formatter: Formatter serving every request
        host: Interface to bind
        port: Port to bind
        logger: Optional event logger
        on_ready: Optional callback receiving the started server
    """
    async with DaemonServer(formatter, host, port, logger) as server:
        if on_ready is not None:
            on_ready(server)
        await server.serve_forever()
