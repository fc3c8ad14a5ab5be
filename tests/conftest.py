"""Shared fixtures and helpers for tests."""

import json
from pathlib import Path
from typing import Any

import pytest

from bicep_facts.models import CompileResult, DeploymentGraph, Metadata

_REPO_ROOT = Path(__file__).parent.parent

SUBSCRIPTION_SCHEMA = "https://schema.management.azure.com/schemas/2018-05-01/subscriptionDeploymentTemplate.json#"
RESOURCE_GROUP_SCHEMA = "https://schema.management.azure.com/schemas/2019-04-01/deploymentTemplate.json#"


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# FakeCompiler: in-process stand-in for a Bicep JSON-RPC session
# ---------------------------------------------------------------------------


class FakeCompiler:
    """Serves canned compiler responses keyed by file path."""

    def __init__(
        self,
        template: dict[str, Any] | None = None,
        *,
        compile_result: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        graph: dict[str, Any] | None = None,
        version: str | None = "0.30.23",
    ) -> None:
        if compile_result is None:
            compile_result = {"success": True, "contents": json.dumps(template or {}), "diagnostics": []}
        self.compile_result = compile_result
        self.metadata = metadata or {}
        self.graph = graph or {}
        self.compiler_version = version
        self.calls: list[tuple[str, str]] = []
        self.stopped = False

    async def version(self) -> str | None:
        self.calls.append(("version", ""))
        return self.compiler_version

    async def compile(self, path: str) -> CompileResult:
        self.calls.append(("compile", path))
        return CompileResult.model_validate(self.compile_result)

    async def get_metadata(self, path: str) -> Metadata:
        self.calls.append(("getMetadata", path))
        return Metadata.model_validate(self.metadata)

    async def get_deployment_graph(self, path: str) -> DeploymentGraph:
        self.calls.append(("getDeploymentGraph", path))
        return DeploymentGraph.model_validate(self.graph)

    async def stop(self) -> None:
        self.stopped = True


def make_template(
    *,
    schema: str = RESOURCE_GROUP_SCHEMA,
    parameters: dict[str, Any] | None = None,
    outputs: dict[str, Any] | None = None,
    resources: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "$schema": schema,
        "contentVersion": "1.0.0.0",
        "parameters": parameters or {},
        "outputs": outputs or {},
        "resources": resources or [],
    }


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def bicep_file(tmp_path: Path) -> Path:
    """A source file under ``tmp_path/infra`` with fixed contents."""
    path = tmp_path / "infra" / "network" / "vnet.bicep"
    path.parent.mkdir(parents=True)
    path.write_text("param name string\n", encoding="utf-8")
    return path


@pytest.fixture
def vnet_template() -> dict[str, Any]:
    return make_template(
        schema=SUBSCRIPTION_SCHEMA,
        parameters={"name": {"type": "string"}},
        outputs={"id": {"type": "string"}},
        resources=[{"type": "Microsoft.Network/virtualNetworks", "apiVersion": "2023-05-01", "name": "vnet"}],
    )


@pytest.fixture
def vnet_graph() -> dict[str, Any]:
    return {"nodes": [{"name": "vnet", "type": "Microsoft.Network/virtualNetworks"}]}
