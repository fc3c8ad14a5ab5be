import os
import sys
from collections.abc import Iterable
from pathlib import Path

from bicep_facts.core.files import strip_suffix

DEFAULT_IGNORED_DIRS = frozenset({".git", "node_modules"})
BICEP_SUFFIX = ".bicep"


def _normalize_for_compare(path: str | Path) -> str:
    resolved = os.path.abspath(path)
    return resolved.lower() if sys.platform == "win32" else resolved


def _is_within(parent: str, child: str) -> bool:
    if parent == child:
        return True
    try:
        return os.path.commonpath([parent, child]) == parent
    except ValueError:
        # Different drives on Windows.
        return False


def _is_excluded(path: str, excluded: list[str]) -> bool:
    if not excluded:
        return False
    candidate = _normalize_for_compare(path)
    return any(_is_within(parent, candidate) for parent in excluded)


def scan_bicep_files(
    root_dir: str | Path,
    *,
    exclude_dirs: Iterable[str] = (),
    exclude_paths: Iterable[str | Path] = (),
) -> list[str]:
    """Return every ``.bicep`` file under *root_dir*, sorted.

    Raises ``NotADirectoryError`` or ``FileNotFoundError`` when *root_dir* is not an existing directory.
    """
    if not os.path.isdir(root_dir):
        if os.path.exists(root_dir):
            raise NotADirectoryError(f"Input path is not a directory: {root_dir}")
        raise FileNotFoundError(f"Input directory does not exist: {root_dir}")
    ignored = DEFAULT_IGNORED_DIRS | set(exclude_dirs)
    excluded = [_normalize_for_compare(path) for path in exclude_paths]
    results: list[str] = []

    for current, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = [
            name for name in dirnames if name not in ignored and not _is_excluded(os.path.join(current, name), excluded)
        ]
        for name in filenames:
            if not name.lower().endswith(BICEP_SUFFIX):
                continue
            file_path = os.path.join(current, name)
            if not _is_excluded(file_path, excluded):
                results.append(file_path)

    return sorted(results)


def resolve_output_path(file_path: str | Path, root_dir: str | Path, out_dir: str | Path | None) -> Path:
    source = Path(file_path)
    file_name = f"{strip_suffix(source.name, BICEP_SUFFIX)}.facts.json"
    if out_dir is None:
        return source.parent / file_name

    try:
        relative = source.resolve().relative_to(Path(root_dir).resolve())
    except ValueError:
        return Path(out_dir) / file_name
    return Path(out_dir) / relative.parent / file_name
