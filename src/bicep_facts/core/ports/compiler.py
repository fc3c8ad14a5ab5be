from typing import Protocol

from bicep_facts.models import CompileResult, DeploymentGraph, Metadata


class TemplateCompiler(Protocol):
    async def version(self) -> str | None: ...

    async def compile(self, path: str) -> CompileResult: ...

    async def get_metadata(self, path: str) -> Metadata: ...

    async def get_deployment_graph(self, path: str) -> DeploymentGraph: ...

    async def stop(self) -> None: ...
