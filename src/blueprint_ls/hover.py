"""Hover content for references, registry types and definition fields."""

from __future__ import annotations

import logging

from lsprotocol.types import Hover, MarkupContent, MarkupKind, Position

from blueprint_ls.blueprint import (
    Blueprint,
    ChildRef,
    DataSourceRef,
    NodeKind,
    Reference,
    Resource,
    ResourceRef,
    TreeNode,
    ValueRef,
    VariableRef,
    collect_nodes_at,
)
from blueprint_ls.completion.fields import (
    BLUEPRINT_TOP_LEVEL_FIELDS,
    DATA_SOURCE_FIELDS,
    EXPORT_FIELDS,
    INCLUDE_FIELDS,
    RESOURCE_FIELDS,
    VALUE_FIELDS,
    VARIABLE_FIELDS,
    FieldTable,
)
from blueprint_ls.completion.service import navigate_schema
from blueprint_ls.deadline import TimeoutExceeded, check_deadline
from blueprint_ls.docmodel import DocumentContext
from blueprint_ls.position import COMPLETION_COLUMN_LEEWAY, to_protocol_range, to_source
from blueprint_ls.registries import Registries, SpecSchema, TypeDescription
from blueprint_ls.state import DocumentState

logger = logging.getLogger(__name__)

_DEFINITION_FIELDS: dict[NodeKind, FieldTable] = {
    NodeKind.RESOURCE: RESOURCE_FIELDS,
    NodeKind.VARIABLE: VARIABLE_FIELDS,
    NodeKind.VALUE: VALUE_FIELDS,
    NodeKind.DATA_SOURCE: DATA_SOURCE_FIELDS,
    NodeKind.INCLUDE: INCLUDE_FIELDS,
    NodeKind.EXPORT: EXPORT_FIELDS,
}


def _field_doc(table: FieldTable, name: str) -> str | None:
    return next((doc for field_name, doc in table if field_name == name), None)


def _titled(title: str, facts: list[tuple[str, str | None]], description: str | None) -> str:
    parts = [f"```{title}```"]
    parts.extend(f"**{label}:** `{value}`" for label, value in facts if value)
    if description:
        parts.append(description)
    return "\n\n".join(parts)


def render_field_schema(label: str, schema: SpecSchema) -> str:
    return _titled(label, [("type", schema.type.value)], schema.documentation())


def render_resource(name: str, resource: Resource) -> str:
    return _titled(f"resources.{name}", [("type", resource.type or "unknown")], resource.description)


class HoverService:
    def __init__(
        self,
        state: DocumentState,
        registries: Registries | None = None,
        *,
        column_leeway: int = COMPLETION_COLUMN_LEEWAY,
    ) -> None:
        self.state = state
        self.registries = registries or Registries()
        self.column_leeway = column_leeway

    def set_registries(self, registries: Registries) -> None:
        self.registries = registries

    def hover(self, uri: str, position: Position) -> Hover | None:
        document = self.state.get_context(uri)
        if document is None:
            return None
        return self.hover_for(document, position)

    def hover_for(self, document: DocumentContext, position: Position) -> Hover | None:
        """Content for the innermost node at position that has any."""
        tree = document.effective_tree
        blueprint = document.effective_blueprint
        if tree is None or blueprint is None:
            return None
        nodes = collect_nodes_at(tree, to_source(position), self.column_leeway)
        for depth in range(len(nodes) - 1, 0, -1):
            node = nodes[depth]
            content = self._content(blueprint, node, nodes[depth - 1])
            if content and node.range is not None:
                return Hover(
                    contents=MarkupContent(kind=MarkupKind.Markdown, value=content),
                    range=to_protocol_range(node.range),
                )
        return None

    def _content(self, blueprint: Blueprint, node: TreeNode, parent: TreeNode) -> str | None:
        if node.reference is not None:
            return self._reference_content(blueprint, node.reference)
        if node.kind is NodeKind.SECTION:
            return _field_doc(BLUEPRINT_TOP_LEVEL_FIELDS, node.label)
        table = _DEFINITION_FIELDS.get(parent.kind)
        if table is None:
            return None
        if node.label == "type" and node.value:
            described = self._type_description(parent.kind, node.value)
            if described:
                return described
        return _field_doc(table, node.label)

    def _reference_content(self, blueprint: Blueprint, reference: Reference) -> str | None:
        match reference:
            case VariableRef(name=name) if name in blueprint.variables:
                variable = blueprint.variables[name]
                return _titled(f"variables.{name}", [("type", variable.type)], variable.description)
            case ValueRef(name=name) if name in blueprint.values:
                value = blueprint.values[name]
                return _titled(f"values.{name}", [("type", value.type)], value.description)
            case ChildRef(name=name) if name in blueprint.includes:
                include = blueprint.includes[name]
                return _titled(f"includes.{name}", [("path", include.path)], include.description)
            case DataSourceRef(name=name, field=field_name) if name in blueprint.datasources:
                data_source = blueprint.datasources[name]
                summary = _titled(
                    f"datasources.{name}", [("type", data_source.type)], data_source.description
                )
                export = data_source.exports.get(field_name or "")
                if export is None:
                    return summary
                return "\n\n".join(
                    [
                        _titled(
                            f"datasources.{name}.{field_name}",
                            [("field type", export.type), ("alias for", export.alias_for)],
                            export.description,
                        ),
                        "### Data source information",
                        summary,
                    ]
                )
            case ResourceRef(name=name, path=path) if name in blueprint.resources:
                return self._resource_reference_content(name, blueprint.resources[name], path)
        return None

    def _resource_reference_content(
        self, name: str, resource: Resource, path: tuple[str, ...]
    ) -> str:
        summary = render_resource(name, resource)
        if len(path) < 2 or path[0] != "spec":
            return summary
        schema = navigate_schema(self._spec_schema(resource.type), path[1:])
        if schema is None:
            return summary
        field_path = ".".join((f"resources.{name}",) + path)
        return "\n\n".join(
            [render_field_schema(field_path, schema), "### Resource information", summary]
        )

    def _spec_schema(self, resource_type: str) -> SpecSchema | None:
        registry = self.registries.resources
        if registry is None or not resource_type:
            return None
        check_deadline("hover.get_spec_definition")
        try:
            if not registry.has_resource_type(resource_type):
                return None
            return registry.get_spec_definition(resource_type).schema
        except TimeoutExceeded:
            raise
        except Exception as exc:
            logger.debug("spec definition for %s unavailable: %s", resource_type, exc)
            return None

    def _type_description(self, parent_kind: NodeKind, type_name: str) -> str | None:
        match parent_kind:
            case NodeKind.RESOURCE:
                registry = self.registries.resources
            case NodeKind.DATA_SOURCE:
                registry = self.registries.data_sources
            case _:
                return None
        if registry is None:
            return None
        check_deadline("hover.get_type_description")
        try:
            description: TypeDescription = registry.get_type_description(type_name)
        except TimeoutExceeded:
            raise
        except Exception as exc:
            logger.debug("type description for %s unavailable: %s", type_name, exc)
            return None
        return description.markdown_description or description.plain_text_description or None
