import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator, FormatChecker

from bicep_facts.errors import SchemaValidationError

DEFAULT_SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "facts.v1.schema.json"


def _pointer(path: Any) -> str:
    return "".join(f"/{part}" for part in path)


def _path_key(path: Any) -> list[tuple[int, int, str]]:
    # Array indices compare numerically and ahead of property names.
    return [(0, part, "") if isinstance(part, int) else (1, 0, str(part)) for part in path]


class SchemaGate:
    """A facts.v1 validator compiled once and reused for every record."""

    def __init__(self, schema: Mapping[str, Any]) -> None:
        Draft202012Validator.check_schema(schema)
        self._validator = Draft202012Validator(schema, format_checker=FormatChecker())

    @classmethod
    def from_path(cls, path: str | Path) -> "SchemaGate":
        schema_path = Path(path)
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")
        return cls(json.loads(schema_path.read_text(encoding="utf-8")))

    @classmethod
    def default(cls) -> "SchemaGate":
        return cls.from_path(DEFAULT_SCHEMA_PATH)

    def iter_violations(self, record: Any) -> list[str]:
        errors = sorted(self._validator.iter_errors(record), key=lambda err: _path_key(err.absolute_path))
        return [f"{_pointer(err.absolute_path)} {err.message}" for err in errors]

    def validate(self, record: Any) -> None:
        """Raise ``SchemaValidationError`` listing every violation, or return."""
        violations = self.iter_violations(record)
        if violations:
            raise SchemaValidationError(violations)
