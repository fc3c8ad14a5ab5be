"""Unit tests for the directory-level generate run."""

import json
from pathlib import Path
from typing import Any

import pytest

from bicep_facts.core.generate import run_generate
from bicep_facts.errors import CompilationFailedError, SchemaValidationError
from tests.conftest import FakeCompiler, make_template


def _write(path: Path, text: str = "// bicep\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.asyncio
async def test_no_files_skips_compiler(tmp_path: Path) -> None:
    compiler = FakeCompiler(make_template())

    written = await run_generate(compiler, tmp_path, generator="bicep-facts@0.1.0")

    assert written == []
    assert compiler.calls == []


@pytest.mark.asyncio
async def test_writes_beside_sources_and_stops(
    tmp_path: Path, vnet_template: dict[str, Any], vnet_graph: dict[str, Any]
) -> None:
    _write(tmp_path / "b.bicep")
    _write(tmp_path / "nested" / "a.bicep")
    compiler = FakeCompiler(vnet_template, graph=vnet_graph)
    seen: list[Path] = []

    written = await run_generate(
        compiler,
        tmp_path,
        generator="bicep-facts@0.1.0",
        generated_at="2024-01-01T00:00:00.000Z",
        on_written=seen.append,
    )

    root = tmp_path.resolve()
    assert written == [root / "b.facts.json", root / "nested" / "a.facts.json"]
    assert seen == written
    assert compiler.stopped
    assert compiler.calls[0] == ("version", "")

    text = written[1].read_text(encoding="utf-8")
    assert text.endswith("}\n")
    record = json.loads(text)
    assert record["source"]["path"] == "nested/a.bicep"
    assert record["source"]["compilerVersion"] == "0.30.23"
    assert record["meta"]["generatedAt"] == "2024-01-01T00:00:00.000Z"
    assert list(record) == sorted(record)


@pytest.mark.asyncio
async def test_out_dir_mirrors_tree_and_is_not_scanned(
    tmp_path: Path, vnet_template: dict[str, Any], vnet_graph: dict[str, Any]
) -> None:
    _write(tmp_path / "infra" / "main.bicep")
    out_dir = tmp_path / "facts"
    _write(out_dir / "stale.bicep")
    compiler = FakeCompiler(vnet_template, graph=vnet_graph)

    written = await run_generate(compiler, tmp_path, generator="g", out_dir=out_dir)

    assert written == [out_dir.resolve() / "infra" / "main.facts.json"]
    compiled = [path for method, path in compiler.calls if method == "compile"]
    assert len(compiled) == 1
    assert compiled[0].endswith("main.bicep")


@pytest.mark.asyncio
async def test_compile_failure_stops_compiler_and_writes_nothing(tmp_path: Path) -> None:
    _write(tmp_path / "main.bicep")
    compiler = FakeCompiler(
        compile_result={"success": False, "diagnostics": [{"code": "BCP007", "message": "bad"}]}
    )

    with pytest.raises(CompilationFailedError, match="BCP007: bad"):
        await run_generate(compiler, tmp_path, generator="g")

    assert compiler.stopped
    assert not (tmp_path / "main.facts.json").exists()


@pytest.mark.asyncio
async def test_schema_violation_aborts_before_write(tmp_path: Path) -> None:
    _write(tmp_path / "main.bicep")
    compiler = FakeCompiler(make_template())

    with pytest.raises(SchemaValidationError, match="/meta/generator"):
        await run_generate(compiler, tmp_path, generator="")

    assert compiler.stopped
    assert not (tmp_path / "main.facts.json").exists()


@pytest.mark.asyncio
async def test_file_named_only_suffix_gets_valid_record(tmp_path: Path) -> None:
    _write(tmp_path / ".bicep")
    compiler = FakeCompiler(make_template())

    written = await run_generate(compiler, tmp_path, generator="g", component_id_from="file")

    assert written == [tmp_path.resolve() / ".bicep.facts.json"]
    assert json.loads(written[0].read_text(encoding="utf-8"))["componentId"] == ".bicep"


@pytest.mark.asyncio
async def test_missing_root_raises_without_starting_compiler(tmp_path: Path) -> None:
    compiler = FakeCompiler(make_template())

    with pytest.raises(FileNotFoundError):
        await run_generate(compiler, tmp_path / "nope", generator="g")

    assert compiler.calls == []
