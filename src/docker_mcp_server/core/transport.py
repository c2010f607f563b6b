"""
Transport layer: newline-delimited JSON-RPC over stdin/stdout.

stdout carries protocol frames only; all logging goes to stderr.
"""

import asyncio
import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, TextIO

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
READ_CHUNK_SIZE = 64 * 1024


class Transport(ABC):
    """Abstract base class for MCP transport implementations"""

    @abstractmethod
    async def connect(self):
        """Establish connection"""

    @abstractmethod
    async def send(self, message: dict[str, Any]) -> None:
        """Send a message"""

    @abstractmethod
    async def receive(self) -> dict[str, Any] | None:
        """Next inbound message, or None once the peer has gone away"""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection"""


class StdioTransport(Transport):
    """
    Reads one JSON message per line from a stream reader and writes replies
    to a text stream. Both default to the process's stdin and stdout.
    """

    def __init__(self, reader: asyncio.StreamReader | None = None, writer: TextIO | None = None):
        self.closed = False
        self._reader = reader
        self._writer = writer
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._reader_task: asyncio.Task | None = None

    async def connect(self):
        if self._reader_task and not self._reader_task.done():
            logger.warning("StdioTransport: Already connected")
            return

        if self._reader is None:
            loop = asyncio.get_running_loop()
            self._reader = asyncio.StreamReader(loop=loop)
            protocol = asyncio.StreamReaderProtocol(self._reader, loop=loop)
            await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        if self._writer is None:
            self._writer = sys.stdout

        self._reader_task = asyncio.create_task(self._read_loop(), name="StdioReader")
        logger.info("StdioTransport: Connected")

    async def _read_loop(self):
        buffer = b""
        try:
            while not self.closed:
                chunk = await self._reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    logger.info("StdioTransport: EOF received, closing")
                    if buffer.strip():
                        await self._handle_line(buffer)
                    break

                buffer += chunk
                # lines are unbounded; readline() would stop at the 64 KiB stream limit
                while b"\n" in buffer:
                    line_bytes, buffer = buffer.split(b"\n", 1)
                    await self._handle_line(line_bytes)
        except asyncio.CancelledError:
            logger.debug("StdioTransport: Reader task cancelled")
            raise
        except Exception as e:
            logger.error(f"StdioTransport: Unexpected error in reader: {e}", exc_info=True)
        finally:
            self._queue.put_nowait(None)

    async def _handle_line(self, line_bytes: bytes):
        line = line_bytes.decode("utf-8", errors="replace").strip()
        if not line:
            return

        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"StdioTransport: Invalid JSON: {e}")
            await self.send(
                {"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": f"Parse error: {e}"}}
            )
            return

        if not isinstance(message, dict):
            await self.send(
                {
                    "jsonrpc": "2.0",
                    "id": None,
                    "error": {"code": -32600, "message": "Invalid Request: expected a JSON object"},
                }
            )
            return
        await self._queue.put(message)

    async def receive(self) -> dict[str, Any] | None:
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    async def send(self, message: dict[str, Any]) -> None:
        if self.closed or self._writer is None:
            logger.warning("StdioTransport: Attempted send on closed transport")
            return

        message.setdefault("jsonrpc", "2.0")
        self._writer.write(json.dumps(message, default=str) + "\n")
        self._writer.flush()
        logger.debug(f"StdioTransport: Sent message (ID: {message.get('id', 'N/A')})")

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        logger.info("StdioTransport: Closed")
