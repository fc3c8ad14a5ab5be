from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import os
from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from bicep_facts.config import get_bicep_path, get_connect_timeout
from bicep_facts.errors import BicepFactsError, ConnectionTimeoutError
from bicep_facts.models import CompileResult, DeploymentGraph, Metadata, VersionResult
from bicep_facts.rpc.connection import JsonRpcConnection
from bicep_facts.rpc.endpoint import PipeEndpoint, generate_pipe_endpoint
from bicep_facts.rpc.process import CompilerProcess

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)
_Streams = tuple[asyncio.StreamReader, asyncio.StreamWriter]

VERSION_METHOD = "bicep/version"
COMPILE_METHOD = "bicep/compile"
GET_METADATA_METHOD = "bicep/getMetadata"
GET_DEPLOYMENT_GRAPH_METHOD = "bicep/getDeploymentGraph"


class SessionState(enum.Enum):
    UNSTARTED = "unstarted"
    STARTING = "starting"
    CONNECTED = "connected"
    STOPPED = "stopped"


class _Listener(Protocol):
    def close(self) -> None: ...


class _PipeServers:
    def __init__(self, servers: list[Any]) -> None:
        self._servers = servers

    def close(self) -> None:
        for server in self._servers:
            server.close()


async def _listen(endpoint: PipeEndpoint, on_connect: Callable[[asyncio.StreamReader, asyncio.StreamWriter], None]) -> _Listener:
    """Bind the endpoint so the compiler can connect back to us."""
    if not endpoint.is_named_pipe:
        return await asyncio.start_unix_server(on_connect, path=endpoint.path)

    loop = asyncio.get_running_loop()

    def _factory() -> asyncio.StreamReaderProtocol:
        return asyncio.StreamReaderProtocol(asyncio.StreamReader(), on_connect)

    servers = await loop.start_serving_pipe(_factory, endpoint.path)  # type: ignore[attr-defined]
    return _PipeServers(servers)


class BicepRpcSession:
    """One ``bicep jsonrpc`` subprocess and the connection it opens back to us.

    Every remote call starts the session on first use. ``stop`` always kills
    the subprocess, even when closing the connection fails.
    """

    def __init__(self, bicep_path: str | None = None, *, connect_timeout: float | None = None) -> None:
        self.bicep_path = bicep_path or get_bicep_path()
        self.connect_timeout = connect_timeout if connect_timeout is not None else get_connect_timeout()
        self._state = SessionState.UNSTARTED
        self._endpoint: PipeEndpoint | None = None
        self._process: CompilerProcess | None = None
        self._connection: JsonRpcConnection | None = None
        self._start_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def process(self) -> CompilerProcess | None:
        return self._process

    @property
    def stderr(self) -> str:
        return self._process.stderr if self._process else ""

    async def __aenter__(self) -> BicepRpcSession:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._connection is not None:
            return
        task = self._start_task
        if task is None:
            task = self._start_task = asyncio.create_task(self._connect())
        try:
            await task
        finally:
            if self._start_task is task and task.done():
                self._start_task = None

    async def _connect(self) -> None:
        if self._process is not None:
            # Left behind by a start attempt that timed out.
            stale, self._process = self._process, None
            stale.kill()
            await stale.wait_closed()

        self._state = SessionState.STARTING
        endpoint = generate_pipe_endpoint()
        self._endpoint = endpoint
        try:
            reader, writer = await self._accept_compiler(endpoint)
        except BaseException:
            # Any launched process is reaped by stop().
            self._state = SessionState.STOPPED
            raise

        connection = JsonRpcConnection(reader, writer)
        connection.listen()
        self._connection = connection
        self._state = SessionState.CONNECTED
        logger.info("Connected to Bicep compiler on %s", endpoint.path)

    async def _accept_compiler(self, endpoint: PipeEndpoint) -> _Streams:
        """Bind the endpoint, launch the compiler and wait for it to connect back."""
        loop = asyncio.get_running_loop()
        connected: asyncio.Future[_Streams] = loop.create_future()

        def _on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            if connected.done():
                writer.close()
                return
            connected.set_result((reader, writer))

        listener = await _listen(endpoint, _on_connect)
        try:
            self._process = await CompilerProcess.launch(self.bicep_path, endpoint.name)
            try:
                reader, writer = await asyncio.wait_for(connected, self.connect_timeout)
            except asyncio.TimeoutError:
                raise ConnectionTimeoutError(
                    "Timed out waiting for Bicep JSON-RPC connection.", stderr=self.stderr
                ) from None
        finally:
            listener.close()
        return reader, writer

    async def stop(self) -> None:
        connection, process = self._connection, self._process
        if connection is None and process is None:
            self._remove_socket_file()
            return
        try:
            if connection is not None:
                try:
                    await connection.end()
                except Exception:
                    logger.warning("Error while closing Bicep JSON-RPC connection", exc_info=True)
        finally:
            if process is not None:
                process.kill()
            self._connection = None
            self._process = None
            self._state = SessionState.STOPPED
            self._remove_socket_file()
            logger.info("Stopped Bicep compiler session")
        if process is not None:
            await process.wait_closed()

    def _remove_socket_file(self) -> None:
        endpoint, self._endpoint = self._endpoint, None
        if endpoint is None or endpoint.is_named_pipe:
            return
        with contextlib.suppress(FileNotFoundError):
            os.unlink(endpoint.path)

    async def _request(self, method: str, params: dict[str, Any], model: type[_ModelT]) -> _ModelT:
        await self.start()
        assert self._connection is not None
        try:
            result = await self._connection.send_request(method, params)
        except BicepFactsError as exc:
            if exc.stderr is None:
                exc.stderr = self.stderr
            raise
        return model.model_validate(result or {})

    async def version(self) -> str | None:
        result = await self._request(VERSION_METHOD, {}, VersionResult)
        return result.version

    async def compile(self, path: str) -> CompileResult:
        return await self._request(COMPILE_METHOD, {"path": path}, CompileResult)

    async def get_metadata(self, path: str) -> Metadata:
        return await self._request(GET_METADATA_METHOD, {"path": path}, Metadata)

    async def get_deployment_graph(self, path: str) -> DeploymentGraph:
        return await self._request(GET_DEPLOYMENT_GRAPH_METHOD, {"path": path}, DeploymentGraph)
