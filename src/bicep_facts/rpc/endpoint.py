import secrets
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

_PREFIX = "bicep"
_SUFFIX_BYTES = 21


@dataclass(frozen=True)
class PipeEndpoint:
    """A local JSON-RPC endpoint.

    ``name`` is what the compiler is told to connect to; ``path`` is what the
    local listener binds. They only differ on Windows, where the compiler takes
    the bare pipe name.
    """

    name: str
    path: str

    @property
    def is_named_pipe(self) -> bool:
        return self.path.startswith("\\\\.\\pipe\\")


def generate_pipe_endpoint(platform: str | None = None) -> PipeEndpoint:
    suffix = secrets.token_hex(_SUFFIX_BYTES)
    if (platform or sys.platform) == "win32":
        pipe_name = f"{_PREFIX}-{suffix}-sock"
        return PipeEndpoint(name=pipe_name, path=f"\\\\.\\pipe\\{pipe_name}")

    socket_path = str(Path(tempfile.gettempdir()) / f"{_PREFIX}-{suffix}.sock")
    return PipeEndpoint(name=socket_path, path=socket_path)
