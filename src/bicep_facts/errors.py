"""Error types raised while driving the Bicep compiler and assembling facts."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class BicepFactsError(Exception):
    """Base error. ``stderr`` carries compiler diagnostic output when it is known."""

    def __init__(self, message: str, *, stderr: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stderr = stderr


class SubprocessUnavailableError(BicepFactsError):
    """The compiler executable is missing or could not be started."""


class ConnectionTimeoutError(BicepFactsError):
    """The compiler never connected to the JSON-RPC endpoint in time."""


class ConnectionClosedError(BicepFactsError):
    """The JSON-RPC connection closed while requests were still pending."""


class RpcResponseError(BicepFactsError):
    """The compiler answered a request with a JSON-RPC error object."""

    def __init__(self, method: str, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"{method} failed ({code}): {message}")
        self.method = method
        self.code = code
        self.data = data


class CompilationFailedError(BicepFactsError):
    def __init__(self, file_path: str, diagnostics: Sequence[tuple[str, str]]) -> None:
        summary = " | ".join(f"{code}: {message}" for code, message in diagnostics)
        super().__init__(f"Bicep compilation failed for {file_path}. {summary}".strip())
        self.file_path = file_path
        self.diagnostics = list(diagnostics)


class SchemaValidationError(BicepFactsError):
    def __init__(self, errors: Sequence[str]) -> None:
        message = "; ".join(errors) if errors else "Schema validation failed"
        super().__init__(message)
        self.errors = list(errors)
