from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Scope = Literal["subscription", "resourceGroup", "managementGroup", "tenant"]
ParameterType = Literal["string", "int", "bool", "array", "object"]
DefaultKind = Literal["none", "literal", "expression"]
ConditionKind = Literal["always", "conditional", "foreach"]
Category = Literal["networking", "compute", "data", "security", "messaging", "integration", "ai", "unknown"]

SCHEMA_VERSION = "facts.v1"
MODULE_NODE_TYPE = "<module>"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Compiler wire responses ---


class _WireModel(_CamelModel):
    @field_validator("*", mode="before")
    @classmethod
    def _null_lists(cls, value: Any, info: Any) -> Any:
        field = cls.model_fields.get(info.field_name)
        if value is None and field is not None and field.default_factory is list:
            return []
        return value


class VersionResult(_WireModel):
    version: str | None = None


class Diagnostic(_WireModel):
    code: str = ""
    message: str = ""


class CompileResult(_WireModel):
    success: bool = False
    contents: str | None = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class SymbolMetadata(_WireModel):
    name: str
    description: str | None = None


class Metadata(_WireModel):
    parameters: list[SymbolMetadata] = Field(default_factory=list)
    outputs: list[SymbolMetadata] = Field(default_factory=list)


class GraphNode(_WireModel):
    name: str
    type: str | None = None
    relative_path: str | None = None

    @property
    def is_module(self) -> bool:
        return self.type == MODULE_NODE_TYPE


class DeploymentGraph(_WireModel):
    nodes: list[GraphNode] = Field(default_factory=list)


# --- facts.v1 record ---
#
# Optional fields are only ever *set* when present; records are dumped with
# ``exclude_unset`` so unset fields disappear from the output while an
# explicit ``null`` default survives.


class ParameterConstraints(_CamelModel):
    allowed: list[Any] | None = None
    min_value: int | float | None = None
    max_value: int | float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None


class Parameter(_CamelModel):
    name: str
    type: ParameterType
    required: bool
    default_kind: DefaultKind
    default: Any = None
    default_expression: str | None = None
    constraints: ParameterConstraints | None = None
    description: str | None = None
    sensitive: bool | None = None


class Output(_CamelModel):
    name: str
    type: ParameterType
    description: str | None = None


class ModuleCondition(_CamelModel):
    kind: ConditionKind


class Module(_CamelModel):
    name: str
    path: str
    scope: Scope | None = None
    condition: ModuleCondition


class Capabilities(_CamelModel):
    category: Category
    features: list[str] | None = None


class FactsSource(_CamelModel):
    path: str
    hash: str
    compiler_version: str | None = None


class FactsScopes(_CamelModel):
    allowed: list[Scope]
    default: Scope


class FactsMeta(_CamelModel):
    generated_at: str
    generator: str
    notes: list[str] | None = None


class Facts(_CamelModel):
    schema_version: Literal["facts.v1"] = SCHEMA_VERSION
    component_id: str
    source: FactsSource
    scopes: FactsScopes
    parameters: list[Parameter]
    outputs: list[Output]
    modules: list[Module] | None = None
    capabilities: Capabilities
    meta: FactsMeta

    def model_post_init(self, context: Any, /) -> None:
        # The version tag is always emitted, even when left at its default.
        self.model_fields_set.add("schema_version")

    def to_record(self) -> dict[str, Any]:
        """Plain JSON-compatible dict with camelCase keys and absent fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
