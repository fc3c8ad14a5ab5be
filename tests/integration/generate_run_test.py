"""End-to-end generation against the fake compiler."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bicep_facts.core.generate import run_generate
from bicep_facts.core.schema import SchemaGate
from bicep_facts.errors import CompilationFailedError
from bicep_facts.rpc import BicepRpcSession
from tests.conftest import SUBSCRIPTION_SCHEMA, make_template
from tests.integration.conftest import write_source


@pytest.mark.asyncio
async def test_writes_validated_facts_for_each_file(fake_bicep: str, tmp_path: Path) -> None:
    root = tmp_path / "infra"
    write_source(
        root / "network" / "vnet.bicep",
        make_template(
            schema=SUBSCRIPTION_SCHEMA,
            parameters={"name": {"type": "string"}},
            outputs={"id": {"type": "string"}},
            resources=[{"type": "Microsoft.Network/virtualNetworks", "name": "vnet"}],
        ),
        graph={"nodes": [{"name": "vnet", "type": "Microsoft.Network/virtualNetworks"}]},
    )
    write_source(
        root / "main.bicep",
        make_template(
            resources=[
                {
                    "type": "Microsoft.Resources/deployments",
                    "name": "network",
                    "condition": "[parameters('deployNetwork')]",
                    "subscriptionId": "[subscription().subscriptionId]",
                }
            ]
        ),
        graph={"nodes": [{"name": "network", "type": "<module>", "relativePath": "network/vnet.bicep"}]},
    )
    out = tmp_path / "facts"
    session = BicepRpcSession(fake_bicep, connect_timeout=10)

    written = await run_generate(
        session,
        root,
        generator="bicep-facts@0.1.0",
        out_dir=out,
        generated_at="2024-05-06T07:08:09.000Z",
        schema_gate=SchemaGate.default(),
    )

    assert written == [out / "main.facts.json", out / "network" / "vnet.facts.json"]
    assert session.process is None

    vnet_text = (out / "network" / "vnet.facts.json").read_text(encoding="utf-8")
    assert vnet_text.endswith("}\n")
    vnet = json.loads(vnet_text)
    assert vnet["scopes"] == {"allowed": ["subscription"], "default": "subscription"}
    assert vnet["source"]["path"] == "network/vnet.bicep"
    assert vnet["source"]["compilerVersion"] == "0.30.23"
    assert vnet["capabilities"]["category"] == "networking"
    assert "modules" not in vnet

    main = json.loads((out / "main.facts.json").read_text(encoding="utf-8"))
    assert main["modules"] == [
        {"name": "network", "path": "network/vnet.bicep", "scope": "subscription", "condition": {"kind": "conditional"}}
    ]


@pytest.mark.asyncio
async def test_output_is_byte_stable_across_runs(fake_bicep: str, tmp_path: Path) -> None:
    root = tmp_path / "infra"
    write_source(root / "app.bicep", make_template(parameters={"b": {"type": "int"}, "a": {"type": "bool"}}))

    outputs = []
    for _ in range(2):
        await run_generate(
            BicepRpcSession(fake_bicep, connect_timeout=10),
            root,
            generator="bicep-facts@0.1.0",
            generated_at="2024-01-01T00:00:00.000Z",
        )
        outputs.append((root / "app.facts.json").read_bytes())

    assert outputs[0] == outputs[1]


@pytest.mark.asyncio
async def test_compilation_failure_aborts_run_and_stops_compiler(fake_bicep: str, tmp_path: Path) -> None:
    root = tmp_path / "infra"
    write_source(
        root / "a.bicep",
        {},
        compile_result={"success": False, "diagnostics": [{"code": "BCP001", "message": "bad syntax"}]},
    )
    write_source(root / "b.bicep", make_template())
    session = BicepRpcSession(fake_bicep, connect_timeout=10)

    with pytest.raises(CompilationFailedError, match="BCP001: bad syntax"):
        await run_generate(session, root, generator="g@1", generated_at="2024-01-01T00:00:00Z")

    assert session.process is None
    assert not (root / "b.facts.json").exists()
