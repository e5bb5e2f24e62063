from __future__ import annotations

from dataclasses import dataclass, field

from blueprint_ls.blueprint import Blueprint
from blueprint_ls.docmodel import DocumentFormat
from blueprint_ls.exceptions import LinkNotFoundError
from blueprint_ls.plugins import Collaborators
from blueprint_ls.registries import (
    FilterFieldSchema,
    FunctionDefinition,
    LinkAnnotationDefinition,
    Registries,
    SpecDefinition,
    TypeDescription,
)
from blueprint_ls.validation import ValidationResult


@dataclass
class FakeResourceRegistry:
    specs: dict[str, SpecDefinition] = field(default_factory=dict)
    descriptions: dict[str, TypeDescription] = field(default_factory=dict)

    def list_resource_types(self) -> list[str]:
        return list(self.specs)

    def has_resource_type(self, resource_type: str) -> bool:
        return resource_type in self.specs

    def get_spec_definition(self, resource_type: str) -> SpecDefinition:
        return self.specs[resource_type]

    def get_type_description(self, resource_type: str) -> TypeDescription:
        return self.descriptions.get(resource_type, TypeDescription())


@dataclass
class FakeDataSourceRegistry:
    filter_fields: dict[str, dict[str, FilterFieldSchema]] = field(default_factory=dict)

    def list_data_source_types(self) -> list[str]:
        return list(self.filter_fields)

    def has_data_source_type(self, data_source_type: str) -> bool:
        return data_source_type in self.filter_fields

    def get_spec_definition(self, data_source_type: str) -> SpecDefinition:
        return SpecDefinition()

    def get_filter_fields(self, data_source_type: str) -> dict[str, FilterFieldSchema]:
        return self.filter_fields.get(data_source_type, {})

    def get_type_description(self, data_source_type: str) -> TypeDescription:
        return TypeDescription(plain_text_description=f"{data_source_type} data source")


@dataclass
class FakeCustomVariableTypeRegistry:
    options: dict[str, dict[str, str]] = field(default_factory=dict)

    def list_custom_variable_types(self) -> list[str]:
        return list(self.options)

    def get_options(self, variable_type: str) -> dict[str, str]:
        return self.options.get(variable_type, {})

    def get_description(self, variable_type: str) -> TypeDescription:
        return TypeDescription(summary=f"{variable_type} options")


@dataclass
class FakeFunctionRegistry:
    functions: dict[str, FunctionDefinition] = field(default_factory=dict)

    def list_functions(self) -> list[str]:
        return list(self.functions)

    def get_definition(self, name: str) -> FunctionDefinition:
        return self.functions[name]


@dataclass
class FakeLink:
    definitions: dict[str, LinkAnnotationDefinition]

    def get_annotation_definitions(self) -> dict[str, LinkAnnotationDefinition]:
        return self.definitions


@dataclass
class FakeLinkRegistry:
    links: dict[tuple[str, str], dict[str, LinkAnnotationDefinition]] = field(
        default_factory=dict
    )
    calls: list[tuple[str, str]] = field(default_factory=list)

    def link(self, resource_type_a: str, resource_type_b: str) -> FakeLink:
        self.calls.append((resource_type_a, resource_type_b))
        definitions = self.links.get((resource_type_a, resource_type_b))
        if definitions is None:
            raise LinkNotFoundError(resource_type_a, resource_type_b)
        return FakeLink(definitions)


@dataclass
class FakeLoader:
    blueprints: dict[str, Blueprint] = field(default_factory=dict)
    loads: list[str] = field(default_factory=list)

    def load(self, path: str, document_format: DocumentFormat) -> Blueprint:
        self.loads.append(path)
        if path not in self.blueprints:
            raise FileNotFoundError(path)
        return self.blueprints[path]


@dataclass
class FakeValidator:
    result: ValidationResult = field(default_factory=ValidationResult)
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    def validate(
        self, uri: str, content: str, document_format: DocumentFormat
    ) -> ValidationResult:
        self.calls.append(uri)
        if self.error is not None:
            raise self.error
        return self.result


def fake_collaborators() -> Collaborators:
    return Collaborators(
        validator=FakeValidator(),
        registries=Registries(resources=FakeResourceRegistry()),
    )


def not_collaborators() -> object:
    return {"validator": None}
