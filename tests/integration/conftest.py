"""Fixtures that stand up a fake Bicep CLI executable."""

import json
import stat
import sys
from pathlib import Path
from typing import Any

import pytest

_FAKE_BICEP = Path(__file__).parent / "fake_bicep.py"


@pytest.fixture
def fake_bicep(tmp_path: Path) -> str:
    """Path to an executable that behaves like ``bicep jsonrpc``."""
    if sys.platform == "win32":
        pytest.skip("the fake compiler connects over a Unix domain socket")
    wrapper = tmp_path / "bin" / "bicep"
    wrapper.parent.mkdir()
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{_FAKE_BICEP}" "$@"\n', encoding="utf-8")
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


def write_source(path: Path, template: dict[str, Any], *, metadata: dict[str, Any] | None = None,
                 graph: dict[str, Any] | None = None, compile_result: dict[str, Any] | None = None) -> Path:
    """Write a .bicep file plus the canned responses the fake compiler serves for it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("// fake source\n", encoding="utf-8")
    responses = {
        "compile": compile_result or {"success": True, "contents": json.dumps(template), "diagnostics": []},
        "metadata": metadata or {"parameters": [], "outputs": []},
        "graph": graph or {"nodes": []},
    }
    Path(f"{path}.json").write_text(json.dumps(responses), encoding="utf-8")
    return path
