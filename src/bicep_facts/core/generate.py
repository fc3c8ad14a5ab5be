import logging
from collections.abc import Callable
from pathlib import Path

from bicep_facts.core.facts import generate_facts
from bicep_facts.core.files import write_text_utf8
from bicep_facts.core.normalize import ComponentIdSource
from bicep_facts.core.ports.compiler import TemplateCompiler
from bicep_facts.core.scan import resolve_output_path, scan_bicep_files
from bicep_facts.core.schema import SchemaGate
from bicep_facts.core.serialize import stable_stringify

logger = logging.getLogger(__name__)


async def run_generate(
    compiler: TemplateCompiler,
    root_dir: str | Path,
    *,
    generator: str,
    out_dir: str | Path | None = None,
    component_id_from: ComponentIdSource = "resource",
    generated_at: str | None = None,
    schema_gate: SchemaGate | None = None,
    on_written: Callable[[Path], None] | None = None,
) -> list[Path]:
    """Write a facts file for every Bicep file under *root_dir*.

    Files are processed one at a time over a single compiler session; the
    first failure aborts the run. The compiler is always stopped on exit.
    Returns the written paths in processing order.
    """
    root = Path(root_dir).resolve()
    out = Path(out_dir).resolve() if out_dir is not None else None
    files = scan_bicep_files(root, exclude_paths=[out] if out is not None else [])
    if not files:
        return []

    gate = schema_gate or SchemaGate.default()
    written: list[Path] = []
    try:
        compiler_version = await compiler.version()
        logger.info("Using Bicep compiler %s for %d file(s)", compiler_version, len(files))
        for file_path in files:
            facts = await generate_facts(
                file_path,
                compiler,
                root_dir=str(root),
                generator=generator,
                component_id_from=component_id_from,
                generated_at=generated_at,
                compiler_version=compiler_version,
            )
            gate.validate(facts.to_record())
            output_path = resolve_output_path(file_path, root, out)
            write_text_utf8(output_path, f"{stable_stringify(facts)}\n")
            logger.info("Wrote %s", output_path)
            written.append(output_path)
            if on_written is not None:
                on_written(output_path)
    finally:
        await compiler.stop()

    return written
