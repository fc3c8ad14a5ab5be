"""Helpers for reading compiled ARM template JSON."""

from typing import Any

from bicep_facts.models import ParameterType, Scope

DEPLOYMENT_RESOURCE_TYPE = "microsoft.resources/deployments"

_SCHEMA_SCOPE_MARKERS: tuple[tuple[str, Scope], ...] = (
    ("subscriptiondeploymenttemplate", "subscription"),
    ("managementgroupdeploymenttemplate", "managementGroup"),
    ("tenantdeploymenttemplate", "tenant"),
)

_EXPRESSION_SCOPE_MARKERS: tuple[tuple[str, Scope], ...] = (
    ("subscription()", "subscription"),
    ("resourcegroup()", "resourceGroup"),
    ("managementgroup()", "managementGroup"),
    ("tenant()", "tenant"),
)

_SECURE_TYPES: dict[str, ParameterType] = {
    "securestring": "string",
    "secureobject": "object",
}

_BASE_TYPES: frozenset[str] = frozenset({"string", "int", "bool", "array", "object"})


def infer_target_scope_from_schema(schema_url: Any) -> Scope:
    if not isinstance(schema_url, str):
        return "resourceGroup"
    normalized = schema_url.lower()
    for marker, scope in _SCHEMA_SCOPE_MARKERS:
        if marker in normalized:
            return scope
    return "resourceGroup"


def infer_scope_from_expression(value: Any) -> Scope | None:
    if not isinstance(value, str):
        return None
    normalized = value.lower()
    for marker, scope in _EXPRESSION_SCOPE_MARKERS:
        if marker in normalized:
            return scope
    return None


def collect_all_resources(template: Any) -> list[dict[str, Any]]:
    """Flatten top-level and nested ``resources`` arrays, parents before children."""
    collected: list[dict[str, Any]] = []

    def walk(resources: Any) -> None:
        if not isinstance(resources, list):
            return
        for resource in resources:
            if not isinstance(resource, dict):
                continue
            collected.append(resource)
            walk(resource.get("resources"))

    if isinstance(template, dict):
        # Language-version 2.0 templates key resources by symbolic name.
        resources = template.get("resources")
        walk(list(resources.values()) if isinstance(resources, dict) else resources)
    return collected


def is_module_deployment_resource(resource: Any) -> bool:
    resource_type = resource.get("type") if isinstance(resource, dict) else None
    return isinstance(resource_type, str) and resource_type.lower() == DEPLOYMENT_RESOURCE_TYPE


def is_arm_expression(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    trimmed = value.strip()
    return trimmed.startswith("[") and trimmed.endswith("]")


def normalize_arm_type(type_value: Any) -> ParameterType:
    if not isinstance(type_value, str):
        return "object"
    lowered = type_value.lower()
    if lowered in _SECURE_TYPES:
        return _SECURE_TYPES[lowered]
    if lowered in _BASE_TYPES:
        return lowered  # type: ignore[return-value]
    return "object"


def is_secure_type(type_value: Any) -> bool:
    return isinstance(type_value, str) and type_value.lower().startswith("secure")
