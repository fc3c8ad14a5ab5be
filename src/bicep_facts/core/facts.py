import asyncio
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any

from bicep_facts.core.arm import infer_target_scope_from_schema
from bicep_facts.core.files import sha256_file, to_posix_path
from bicep_facts.core.normalize import (
    ComponentIdSource,
    build_capabilities,
    build_modules,
    build_outputs,
    build_parameters,
    collect_resource_types,
    resolve_component_id,
)
from bicep_facts.core.ports.compiler import TemplateCompiler
from bicep_facts.errors import CompilationFailedError
from bicep_facts.models import SCHEMA_VERSION, Facts, FactsMeta, FactsScopes, FactsSource

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def file_mtime_iso(file_path: str) -> str:
    mtime_us = os.stat(file_path).st_mtime_ns // 1000
    return format_timestamp(_EPOCH + timedelta(microseconds=mtime_us))


async def generate_facts(
    file_path: str,
    compiler: TemplateCompiler,
    *,
    root_dir: str,
    generator: str,
    component_id_from: ComponentIdSource = "resource",
    generated_at: str | None = None,
    compiler_version: str | None = None,
) -> Facts:
    """Compile one Bicep file and assemble its facts record.

    The compile, metadata and deployment-graph requests are independent, so
    they are sent together; the first failure aborts the file.
    """
    compile_result, metadata, graph = await asyncio.gather(
        compiler.compile(file_path),
        compiler.get_metadata(file_path),
        compiler.get_deployment_graph(file_path),
    )

    if not compile_result.success or not compile_result.contents:
        raise CompilationFailedError(
            file_path,
            [(diagnostic.code, diagnostic.message) for diagnostic in compile_result.diagnostics],
        )

    template: dict[str, Any] = json.loads(compile_result.contents)
    target_scope = infer_target_scope_from_schema(template.get("$schema"))

    resource_types = collect_resource_types(graph)
    modules = build_modules(template, graph)

    notes: list[str] = []
    if modules.omitted:
        notes.append(f"Omitted {len(modules.omitted)} module(s) without resolvable path.")

    source: dict[str, Any] = {
        "path": to_posix_path(os.path.relpath(file_path, root_dir)),
        "hash": await asyncio.to_thread(sha256_file, file_path),
    }
    if compiler_version is not None:
        source["compiler_version"] = compiler_version

    meta: dict[str, Any] = {
        "generated_at": generated_at or await asyncio.to_thread(file_mtime_iso, file_path),
        "generator": generator,
    }
    if notes:
        meta["notes"] = notes

    values: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "component_id": resolve_component_id(component_id_from, file_path, resource_types),
        "source": FactsSource(**source),
        "scopes": FactsScopes(allowed=[target_scope], default=target_scope),
        "parameters": build_parameters(template, metadata.parameters),
        "outputs": build_outputs(template, metadata.outputs),
        "capabilities": build_capabilities(resource_types),
        "meta": FactsMeta(**meta),
    }
    if modules.modules:
        values["modules"] = modules.modules
    return Facts(**values)
