import hashlib
import os
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: str | Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        while chunk := handle.read(_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def to_posix_path(path: str) -> str:
    return path.replace(os.sep, "/")


def write_text_utf8(path: str | Path, content: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


def strip_suffix(name: str, suffix: str) -> str:
    """Drop *suffix* from *name* unless nothing would be left (``.bicep`` stays ``.bicep``)."""
    if len(name) > len(suffix) and name.endswith(suffix):
        return name[: -len(suffix)]
    return name
