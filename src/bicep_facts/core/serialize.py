import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


def stable_clone(value: Any) -> Any:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if isinstance(value, Mapping):
        return {str(key): stable_clone(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [stable_clone(item) for item in value]
    return value


def stable_stringify(value: Any, indent: int = 2) -> str:
    """Serialize with keys sorted at every depth so equal content gives equal bytes."""
    return json.dumps(stable_clone(value), indent=indent, ensure_ascii=False)
