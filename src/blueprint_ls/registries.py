"""Capability interfaces for the provider registries.

Registries are supplied by plugins and may be slow or out of process. The
language services depend only on these protocols; every call is treated as
fallible I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from blueprint_ls.json_types import JSONValue


class SchemaType(Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    MAP = "map"
    UNION = "union"


@dataclass
class SpecSchema:
    type: SchemaType
    description: str = ""
    formatted_description: str = ""
    attributes: dict[str, "SpecSchema"] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
    items: "SpecSchema | None" = None
    map_values: "SpecSchema | None" = None
    one_of: list["SpecSchema"] = field(default_factory=list)
    allowed_values: list[JSONValue] = field(default_factory=list)
    computed: bool = False

    def documentation(self) -> str:
        return self.formatted_description or self.description


@dataclass
class SpecDefinition:
    schema: SpecSchema | None = None


@dataclass(frozen=True)
class TypeDescription:
    markdown_description: str = ""
    plain_text_description: str = ""
    summary: str = ""

    def best(self) -> str:
        return self.markdown_description or self.plain_text_description or self.summary


@dataclass(frozen=True)
class FilterFieldSchema:
    type: SchemaType
    description: str = ""


@dataclass(frozen=True)
class FunctionParameter:
    name: str
    type: str = ""
    description: str = ""
    variadic: bool = False

    def label(self) -> str:
        label = f"{self.name}: {self.type}" if self.type else self.name
        return f"...{label}" if self.variadic else label


@dataclass(frozen=True)
class FunctionDefinition:
    name: str
    summary: str = ""
    formatted_description: str = ""
    description: str = ""
    parameters: tuple[FunctionParameter, ...] = ()
    return_type: str = ""

    def signature_label(self) -> str:
        params = ", ".join(parameter.label() for parameter in self.parameters)
        label = f"{self.name}({params})"
        return f"{label} -> {self.return_type}" if self.return_type else label


class AppliesTo(Enum):
    A = "a"
    B = "b"
    ANY = "any"


@dataclass(frozen=True)
class LinkAnnotationDefinition:
    name: str
    type: SchemaType = SchemaType.STRING
    description: str = ""
    allowed_values: tuple[JSONValue, ...] = ()
    default_value: JSONValue = None
    applies_to: AppliesTo = AppliesTo.ANY
    required: bool = False


class ResourceRegistry(Protocol):
    def list_resource_types(self) -> list[str]: ...

    def has_resource_type(self, resource_type: str) -> bool: ...

    def get_spec_definition(self, resource_type: str) -> SpecDefinition: ...

    def get_type_description(self, resource_type: str) -> TypeDescription: ...


class DataSourceRegistry(Protocol):
    def list_data_source_types(self) -> list[str]: ...

    def has_data_source_type(self, data_source_type: str) -> bool: ...

    def get_spec_definition(self, data_source_type: str) -> SpecDefinition: ...

    def get_filter_fields(self, data_source_type: str) -> dict[str, FilterFieldSchema]: ...

    def get_type_description(self, data_source_type: str) -> TypeDescription: ...


class CustomVariableTypeRegistry(Protocol):
    def list_custom_variable_types(self) -> list[str]: ...

    def get_options(self, variable_type: str) -> dict[str, str]:
        """Map option labels to their values."""
        ...

    def get_description(self, variable_type: str) -> TypeDescription: ...


class FunctionRegistry(Protocol):
    def list_functions(self) -> list[str]: ...

    def get_definition(self, name: str) -> FunctionDefinition: ...


class Link(Protocol):
    def get_annotation_definitions(self) -> dict[str, LinkAnnotationDefinition]:
        """Definitions keyed by ``resourceType::annotationName``."""
        ...


class LinkRegistry(Protocol):
    def link(self, resource_type_a: str, resource_type_b: str) -> Link:
        """Return the link for the A/B pair or raise LinkNotFoundError."""
        ...


@dataclass
class Registries:
    resources: ResourceRegistry | None = None
    data_sources: DataSourceRegistry | None = None
    custom_variable_types: CustomVariableTypeRegistry | None = None
    functions: FunctionRegistry | None = None
    links: LinkRegistry | None = None
