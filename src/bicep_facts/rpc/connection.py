"""JSON-RPC 2.0 client over the stream pair the compiler connects back on.

pygls does the ``Content-Length`` framing, message ids and response
correlation. This module attaches its protocol to an already accepted socket
or pipe, runs the read loop, and maps failures onto ``bicep_facts.errors``.
Requests may be issued concurrently and are answered in whatever order the
peer replies.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import Any

from pygls.client import JsonRPCClient
from pygls.exceptions import JsonRpcException
from pygls.io_ import run_async

from bicep_facts.errors import ConnectionClosedError, RpcResponseError

logger = logging.getLogger(__name__)


class JsonRpcConnection(JsonRPCClient):
    """A pygls JSON-RPC client bound to one accepted ``(reader, writer)`` pair."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._reader_stop = threading.Event()
        self._listener: asyncio.Task[None] | None = None
        self._disconnected: asyncio.Future[None] | None = None
        self._close_reason = "JSON-RPC connection closed by the compiler."
        self._in_flight = 0
        self._ended = False

    @property
    def closed(self) -> bool:
        return self._ended or (self._disconnected is not None and self._disconnected.done())

    @property
    def pending_count(self) -> int:
        return self._in_flight

    def listen(self) -> None:
        if self._listener is not None:
            return
        self.protocol.set_writer(self._writer)
        self._disconnected = asyncio.get_running_loop().create_future()
        self._listener = asyncio.create_task(self._read_loop())

    async def send_request(self, method: str, params: Any) -> Any:
        if self.closed or self._disconnected is None:
            raise ConnectionClosedError(f"Cannot send {method}: connection is closed.")

        logger.debug("--> %s", method)
        request = self.protocol.send_request_async(method, params)
        self._in_flight += 1
        try:
            done, _ = await asyncio.wait({request, self._disconnected}, return_when=asyncio.FIRST_COMPLETED)
            if request not in done:
                raise ConnectionClosedError(self._close_reason)
            try:
                return request.result()
            except JsonRpcException as exc:
                raise RpcResponseError(method, int(exc.code or 0), str(exc.message), exc.data) from None
        finally:
            self._in_flight -= 1
            if not request.done():
                request.cancel()

    async def send_notification(self, method: str, params: Any = None) -> None:
        if self.closed or self._disconnected is None:
            raise ConnectionClosedError(f"Cannot send {method}: connection is closed.")
        self.protocol.notify(method, params)
        await self._writer.drain()

    async def end(self) -> None:
        """Stop listening, fail outstanding requests and close the writer."""
        if self._ended:
            return
        self._ended = True
        self._close_reason = "JSON-RPC connection was closed."
        self._reader_stop.set()
        if self._listener is not None:
            self._listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener
            self._listener = None
        self._writer.close()
        await self._writer.wait_closed()

    async def _read_loop(self) -> None:
        try:
            await run_async(
                stop_event=self._reader_stop,
                reader=self._reader,
                protocol=self.protocol,
                logger=logger,
                error_handler=self._report_error,
            )
        except (OSError, ValueError) as exc:
            logger.warning("JSON-RPC connection failed: %s", exc)
            self._close_reason = f"JSON-RPC connection failed: {exc}"
        finally:
            if self._disconnected is not None and not self._disconnected.done():
                self._disconnected.set_result(None)

    def _report_error(self, error: Exception, source: Any) -> None:
        logger.warning("JSON-RPC message error (%s): %s", getattr(source, "__name__", source), error)
