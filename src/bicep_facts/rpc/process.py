from __future__ import annotations

import asyncio
import contextlib
import logging
import subprocess

from bicep_facts.errors import SubprocessUnavailableError

logger = logging.getLogger(__name__)


class CompilerProcess:
    """A running ``bicep jsonrpc`` subprocess and its captured stderr."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
        self._stderr_chunks: list[str] = []
        self.exit_code: int | None = None
        self._monitor: asyncio.Task[None] = asyncio.create_task(self._drain())

    @classmethod
    async def launch(cls, executable: str, pipe_name: str) -> CompilerProcess:
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                "jsonrpc",
                "--pipe",
                pipe_name,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SubprocessUnavailableError(f"Failed to start Bicep compiler '{executable}': {exc}") from exc
        logger.info("Started Bicep compiler (pid %s)", process.pid)
        return cls(process)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def stderr(self) -> str:
        return "".join(self._stderr_chunks)

    @property
    def exited(self) -> bool:
        return self.exit_code is not None

    async def _drain(self) -> None:
        stream = self._process.stderr
        if stream is not None:
            while chunk := await stream.read(4096):
                self._stderr_chunks.append(chunk.decode("utf-8", errors="replace"))
        self.exit_code = await self._process.wait()
        logger.info("Bicep compiler exited with code %s", self.exit_code)

    def kill(self) -> None:
        """Send a kill signal without waiting for the process to exit."""
        if self._process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            self._process.kill()

    async def wait_closed(self, timeout: float = 1.0) -> None:
        """Give the monitor a moment to record the exit code, then cancel it."""
        try:
            await asyncio.wait_for(asyncio.shield(self._monitor), timeout)
        except asyncio.TimeoutError:
            pass
        except Exception:
            logger.debug("Compiler monitor failed", exc_info=True)
        if not self._monitor.done():
            self._monitor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._monitor


INSTALL_HINTS = (
    "Install options:\n"
    "  - Azure CLI: az bicep install\n"
    "  - Standalone Bicep CLI: https://learn.microsoft.com/azure/azure-resource-manager/bicep/install"
)


def ensure_bicep_available(executable: str) -> str:
    """Run ``<executable> --version`` and return its output, or raise."""
    try:
        result = subprocess.run(
            [executable, "--version"],
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise SubprocessUnavailableError(f"Bicep CLI not found or failed to run.\n{INSTALL_HINTS}") from exc
    if result.returncode != 0:
        raise SubprocessUnavailableError(
            f"Bicep CLI not found or failed to run.\n{INSTALL_HINTS}", stderr=result.stderr or None
        )
    return result.stdout.strip()
