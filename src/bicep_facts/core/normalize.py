"""Pure transformations from compiler output to facts.v1 entities."""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from bicep_facts.core.arm import (
    collect_all_resources,
    infer_scope_from_expression,
    is_arm_expression,
    is_module_deployment_resource,
    is_secure_type,
    normalize_arm_type,
)
from bicep_facts.core.files import strip_suffix
from bicep_facts.models import (
    Capabilities,
    Category,
    ConditionKind,
    DeploymentGraph,
    Module,
    ModuleCondition,
    Output,
    Parameter,
    ParameterConstraints,
    Scope,
    SymbolMetadata,
)

ComponentIdSource = Literal["resource", "file"]

CATEGORY_BY_PROVIDER: dict[str, Category] = {
    "microsoft.network": "networking",
    "microsoft.compute": "compute",
    "microsoft.containerservice": "compute",
    "microsoft.containerregistry": "compute",
    "microsoft.web": "compute",
    "microsoft.storage": "data",
    "microsoft.sql": "data",
    "microsoft.documentdb": "data",
    "microsoft.dbformysql": "data",
    "microsoft.dbforpostgresql": "data",
    "microsoft.keyvault": "security",
    "microsoft.authorization": "security",
    "microsoft.eventhub": "messaging",
    "microsoft.servicebus": "messaging",
    "microsoft.apimanagement": "integration",
    "microsoft.cognitiveservices": "ai",
    "microsoft.machinelearningservices": "ai",
}

_CONSTRAINT_KEYS: tuple[tuple[str, str], ...] = (
    ("minValue", "min_value"),
    ("maxValue", "max_value"),
    ("minLength", "min_length"),
    ("maxLength", "max_length"),
    ("pattern", "pattern"),
)


@dataclass
class ModuleResolution:
    modules: list[Module] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)


def _is_declared(value: Any) -> bool:
    return value is not None and value is not False and value != ""


def _by_name(entries: Iterable[SymbolMetadata]) -> dict[str, SymbolMetadata]:
    return {entry.name: entry for entry in entries}


def _description(name: str, definition: Mapping[str, Any], metadata: Mapping[str, SymbolMetadata]) -> str | None:
    entry = metadata.get(name)
    if entry is not None and entry.description is not None:
        return entry.description
    template_metadata = definition.get("metadata")
    if isinstance(template_metadata, dict) and isinstance(template_metadata.get("description"), str):
        return template_metadata["description"]
    return None


def collect_resource_types(graph: DeploymentGraph) -> list[str]:
    """Distinct declared resource types in the graph, module nodes excluded, sorted."""
    return sorted({node.type for node in graph.nodes if node.type and not node.is_module})


def resolve_component_id(component_id_from: ComponentIdSource, file_path: str, resource_types: list[str]) -> str:
    stem = strip_suffix(Path(file_path).name, ".bicep")
    if component_id_from == "file" or not resource_types:
        return stem
    main_type = resource_types[0]
    last_segment = main_type.split("/")[-1] or main_type
    return last_segment.lower()


def build_constraints(definition: Mapping[str, Any]) -> ParameterConstraints | None:
    values: dict[str, Any] = {}
    if isinstance(definition.get("allowedValues"), list):
        values["allowed"] = definition["allowedValues"]
    for template_key, field_name in _CONSTRAINT_KEYS:
        if definition.get(template_key) is not None:
            values[field_name] = definition[template_key]
    return ParameterConstraints(**values) if values else None


def build_parameters(template: Mapping[str, Any], metadata: Iterable[SymbolMetadata]) -> list[Parameter]:
    by_name = _by_name(metadata)
    declared = template.get("parameters")
    results: list[Parameter] = []

    for name, definition in (declared if isinstance(declared, dict) else {}).items():
        if not isinstance(definition, dict):
            definition = {}
        has_default = "defaultValue" in definition
        default_value = definition.get("defaultValue")
        if not has_default:
            default_kind = "none"
        elif is_arm_expression(default_value):
            default_kind = "expression"
        else:
            default_kind = "literal"

        values: dict[str, Any] = {
            "name": name,
            "type": normalize_arm_type(definition.get("type")),
            "required": not has_default,
            "default_kind": default_kind,
        }
        if default_kind == "literal":
            values["default"] = default_value
        elif default_kind == "expression":
            values["default_expression"] = default_value
        constraints = build_constraints(definition)
        if constraints is not None:
            values["constraints"] = constraints
        description = _description(name, definition, by_name)
        if description is not None:
            values["description"] = description
        if is_secure_type(definition.get("type")):
            values["sensitive"] = True
        results.append(Parameter(**values))

    return sorted(results, key=lambda p: p.name)


def build_outputs(template: Mapping[str, Any], metadata: Iterable[SymbolMetadata]) -> list[Output]:
    by_name = _by_name(metadata)
    declared = template.get("outputs")
    results: list[Output] = []

    for name, definition in (declared if isinstance(declared, dict) else {}).items():
        if not isinstance(definition, dict):
            definition = {}
        values: dict[str, Any] = {"name": name, "type": normalize_arm_type(definition.get("type"))}
        description = _description(name, definition, by_name)
        if description is not None:
            values["description"] = description
        results.append(Output(**values))

    return sorted(results, key=lambda o: o.name)


def classify_condition(resource: Mapping[str, Any] | None) -> ConditionKind:
    if resource is None:
        return "always"
    if _is_declared(resource.get("copy")):
        return "foreach"
    if _is_declared(resource.get("condition")):
        return "conditional"
    return "always"


def infer_module_scope(resource: Mapping[str, Any] | None) -> Scope | None:
    """Explicit scope expression first, then subscriptionId, then resourceGroup."""
    if resource is None:
        return None
    if _is_declared(resource.get("scope")):
        inferred = infer_scope_from_expression(resource["scope"])
        if inferred is not None:
            return inferred
    if _is_declared(resource.get("subscriptionId")):
        return "subscription"
    if _is_declared(resource.get("resourceGroup")):
        return "resourceGroup"
    return None


def _template_link_uri(resource: Mapping[str, Any] | None) -> str | None:
    if resource is None:
        return None
    properties = resource.get("properties")
    link = properties.get("templateLink") if isinstance(properties, dict) else None
    uri = link.get("uri") if isinstance(link, dict) else None
    return uri if isinstance(uri, str) else None


def build_modules(template: Mapping[str, Any], graph: DeploymentGraph) -> ModuleResolution:
    deployments: dict[str, dict[str, Any]] = {}
    for resource in collect_all_resources(template):
        if is_module_deployment_resource(resource) and isinstance(resource.get("name"), str):
            deployments[resource["name"]] = resource

    resolution = ModuleResolution()
    seen: set[str] = set()
    for node in graph.nodes:
        if not node.is_module:
            continue

        resource = deployments.get(node.name)
        path = node.relative_path if node.relative_path is not None else _template_link_uri(resource)
        if not path:
            resolution.omitted.append(node.name)
            continue
        if node.name in seen:
            continue
        seen.add(node.name)

        values: dict[str, Any] = {
            "name": node.name,
            "path": path,
            "condition": ModuleCondition(kind=classify_condition(resource)),
        }
        scope = infer_module_scope(resource)
        if scope is not None:
            values["scope"] = scope
        resolution.modules.append(Module(**values))

    resolution.modules.sort(key=lambda m: m.name)
    return resolution


def classify_provider(resource_type: str) -> Category:
    provider = resource_type.split("/", 1)[0].lower()
    return CATEGORY_BY_PROVIDER.get(provider, "unknown")


def build_capabilities(resource_types: list[str]) -> Capabilities:
    if not resource_types:
        return Capabilities(category="unknown")
    counts = Counter(classify_provider(resource_type) for resource_type in resource_types)
    category = min(counts, key=lambda name: (-counts[name], name))
    return Capabilities(category=category, features=list(resource_types))
