"""Completion: classify the cursor, dispatch to a strategy, format items."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    Position,
    Range,
    TextEdit,
)

from blueprint_ls.blueprint import Blueprint, Resource
from blueprint_ls.child_resolver import ChildBlueprintResolver
from blueprint_ls.completion import fields
from blueprint_ls.completion.context import (
    CompletionContext,
    CompletionContextKind,
    classify,
)
from blueprint_ls.completion.formatter import (
    PrefixInfo,
    bracket_insert_range,
    extract_prefix,
    format_bracket_notation,
    format_key,
    format_map_key_for_bracket_insertion,
    format_value,
    insert_range,
    matches_prefix,
    needs_bracket_notation,
)
from blueprint_ls.completion.items import (
    NO_SPEC_SCHEMA,
    RESOURCE_TYPE_NOT_FOUND,
    hint_item,
    make_item,
    markdown,
)
from blueprint_ls.completion.links import LinkRelationshipInferer
from blueprint_ls.completion.subpath import (
    active_substitution,
    expression_tail,
    split_segments,
)
from blueprint_ls.deadline import TimeoutExceeded, check_deadline
from blueprint_ls.docmodel import CursorContext, DocumentContext, DocumentFormat
from blueprint_ls.exceptions import BlueprintLSError
from blueprint_ls.invariants import never
from blueprint_ls.json_types import JSONObject
from blueprint_ls.position import COMPLETION_COLUMN_LEEWAY, to_source
from blueprint_ls.registries import Registries, SchemaType, SpecSchema
from blueprint_ls.schema import (
    DataSourceTypeResolveData,
    FunctionResolveData,
    ResourceTypeResolveData,
    VariableTypeResolveData,
    inert,
    parse_resolve_data,
    resolve_data_payload,
)
from blueprint_ls.state import DocumentState

logger = logging.getLogger(__name__)

_K = CompletionContextKind
_RAW_PARTIAL = re.compile(r"[^.\[\"']*$")


@dataclass
class _Request:
    document: DocumentContext
    cursor: CursorContext
    context: CompletionContext
    blueprint: Blueprint | None
    position: Position
    prefix: PrefixInfo

    @property
    def format(self) -> DocumentFormat:
        return self.document.format

    def value_text(self, value: str) -> str:
        return format_value(
            value,
            self.format,
            self.prefix.has_leading_quote,
            self.prefix.has_leading_space,
        )

    def prefix_range(self) -> Range:
        return insert_range(self.position, self.prefix.prefix_len)

    def resource(self) -> Resource | None:
        name = self.context.entity_name
        if self.blueprint is None or name is None:
            return None
        return self.blueprint.resources.get(name)


class _RootCandidate(NamedTuple):
    label: str
    sort_prefix: str
    kind: CompletionItemKind
    detail: str
    data: JSONObject


def navigate_schema(schema: SpecSchema | None, path: tuple[str, ...]) -> SpecSchema | None:
    node = schema
    for segment in path:
        if node is None:
            return None
        match node.type:
            case SchemaType.OBJECT:
                node = node.attributes.get(segment)
            case SchemaType.MAP:
                node = node.map_values
            case SchemaType.ARRAY:
                node = node.items if segment.isdigit() else None
            case SchemaType.UNION:
                node = next(
                    (
                        found
                        for member in node.one_of
                        if (found := navigate_schema(member, (segment,))) is not None
                    ),
                    None,
                )
            case _:
                return None
    return node


class CompletionService:
    def __init__(
        self,
        state: DocumentState,
        registries: Registries | None = None,
        link_inferer: LinkRelationshipInferer | None = None,
        child_resolver: ChildBlueprintResolver | None = None,
        *,
        key_completions_in_jsonc: bool = False,
        column_leeway: int = COMPLETION_COLUMN_LEEWAY,
    ) -> None:
        self.state = state
        self.registries = registries or Registries()
        self.link_inferer = link_inferer or LinkRelationshipInferer(self.registries.links)
        self.child_resolver = child_resolver or ChildBlueprintResolver()
        self.key_completions_in_jsonc = key_completions_in_jsonc
        self.column_leeway = column_leeway
        self._strategies: dict[CompletionContextKind, Callable[[_Request], list[CompletionItem]]] = {
            _K.RESOURCE_TYPE: self._resource_types,
            _K.DATA_SOURCE_TYPE: self._data_source_types,
            _K.VARIABLE_TYPE: self._variable_types,
            _K.VALUE_TYPE: self._static_types(fields.VALUE_TYPES, "Value type", "valueType"),
            _K.EXPORT_TYPE: self._static_types(fields.EXPORT_TYPES, "Export type", "exportType"),
            _K.DATA_SOURCE_FIELD_TYPE: self._static_types(
                fields.DATA_SOURCE_FIELD_TYPES, "Data source field type", "dataSourceFieldType"
            ),
            _K.DATA_SOURCE_FILTER_FIELD: self._filter_fields,
            _K.DATA_SOURCE_FILTER_OPERATOR: self._filter_operators,
            _K.RESOURCE_SPEC_FIELD: self._spec_fields,
            _K.RESOURCE_SPEC_FIELD_VALUE: self._spec_field_values,
            _K.RESOURCE_ANNOTATION_KEY: self._annotation_keys,
            _K.RESOURCE_ANNOTATION_VALUE: self._annotation_values,
            _K.LINK_SELECTOR_EXCLUDE_VALUE: self._other_resource_names("linkSelectorExclude"),
            _K.DEPENDS_ON_VALUE: self._other_resource_names("resource"),
            _K.VERSION_VALUE: self._versions,
            _K.VARIABLE_DEFAULT_VALUE: self._variable_defaults,
            _K.EXPORT_FIELD_NAMESPACE: self._export_namespaces,
            _K.EXPORT_FIELD_ENTITY: self._export_entities,
            _K.EXPORT_FIELD_RESOURCE_PROPERTY: self._export_resource_properties,
            _K.STRING_SUB: self._substitution_roots,
            _K.STRING_SUB_RESOURCE_REF: self._namespace_refs("resources"),
            _K.STRING_SUB_VARIABLE_REF: self._namespace_refs("variables"),
            _K.STRING_SUB_DATA_SOURCE_REF: self._namespace_refs("datasources"),
            _K.STRING_SUB_VALUE_REF: self._namespace_refs("values"),
            _K.STRING_SUB_CHILD_REF: self._namespace_refs("children"),
            _K.STRING_SUB_RESOURCE_PROPERTY: self._resource_properties,
            _K.STRING_SUB_DATA_SOURCE_PROPERTY: self._data_source_properties,
            _K.STRING_SUB_VALUE_PROPERTY: self._value_properties,
            _K.STRING_SUB_CHILD_PROPERTY: self._child_properties,
        }
        for kind in fields.DEFINITION_FIELD_TABLES:
            self._strategies[kind] = self._definition_fields
        missing = [
            kind for kind in CompletionContextKind
            if kind is not _K.UNKNOWN and kind not in self._strategies
        ]
        if missing:
            never("completion kinds without a strategy", kinds=[kind.tag for kind in missing])

    def set_registries(self, registries: Registries) -> None:
        self.registries = registries
        self.link_inferer.set_registry(registries.links)

    # Entry points.

    def completion_list(self, uri: str, position: Position) -> CompletionList:
        document = self.state.get_context(uri)
        if document is None:
            return CompletionList(is_incomplete=False, items=[])
        return CompletionList(is_incomplete=False, items=self.items_for(document, position))

    def items_for(self, document: DocumentContext, position: Position) -> list[CompletionItem]:
        cursor = document.cursor_context(to_source(position), self.column_leeway)
        blueprint = document.effective_blueprint
        names = blueprint.names_by_namespace() if blueprint is not None else {}
        context = classify(cursor, names)
        if not context.kind.enabled_for(document.format, self.key_completions_in_jsonc):
            return []
        request = _Request(
            document=document,
            cursor=cursor,
            context=context,
            blueprint=blueprint,
            position=position,
            prefix=extract_prefix(cursor),
        )
        try:
            items = self._strategies[context.kind](request)
        except TimeoutExceeded:
            logger.warning("completion deadline exceeded for %s", context.kind.tag)
            return []
        except BlueprintLSError as exc:
            logger.debug("completion for %s failed: %s", context.kind.tag, exc)
            return []
        except Exception:
            logger.exception("completion for %s failed", context.kind.tag)
            return []
        if context.kind.is_substitution:
            return self._rewrite_substitution_edits(items, cursor, position)
        return items

    def resolve(self, item: CompletionItem) -> CompletionItem:
        """Fill in documentation that is too expensive to compute eagerly."""
        data = parse_resolve_data(item.data)
        registries = self.registries
        try:
            check_deadline("completion.resolve")
            match data:
                case ResourceTypeResolveData(resource_type=resource_type) if registries.resources:
                    text = registries.resources.get_type_description(resource_type).best()
                case DataSourceTypeResolveData(data_source_type=data_source_type) if registries.data_sources:
                    text = registries.data_sources.get_type_description(data_source_type).best()
                case VariableTypeResolveData(variable_type=variable_type) if registries.custom_variable_types:
                    text = registries.custom_variable_types.get_description(variable_type).best()
                case FunctionResolveData(function_name=name) if registries.functions:
                    definition = registries.functions.get_definition(name)
                    text = definition.formatted_description or definition.description
                    item.detail = item.detail or definition.summary or None
                case _:
                    return item
        except TimeoutExceeded:
            logger.warning("resolve deadline exceeded for %s", item.label)
            return item
        except (BlueprintLSError, KeyError) as exc:
            logger.debug("could not resolve %s: %s", item.label, exc)
            return item
        except Exception:
            logger.exception("resolve failed for %s", item.label)
            return item
        documentation = markdown(text)
        if documentation is not None:
            item.documentation = documentation
        return item

    def _rewrite_substitution_edits(
        self,
        items: list[CompletionItem],
        cursor: CursorContext,
        position: Position,
    ) -> list[CompletionItem]:
        """Make every substitution item replace the whole reference path.

        Clients filter against the text inside the edit range, which is
        unreliable over a partially typed path, so each item carries the full
        path and the list is returned as complete.
        """
        try:
            opener, text = active_substitution(cursor.text_before)
        except BlueprintLSError:
            return items
        tail = expression_tail(text)
        raw_partial = _RAW_PARTIAL.search(tail)
        committed = tail[: len(tail) - len(raw_partial.group(0))] if raw_partial else tail
        start_character = opener + 2 + len(text) - len(tail)
        edit_range = Range(
            start=Position(line=position.line, character=start_character),
            end=position,
        )
        directly_after_opener = len(text) == len(tail)
        for item in items:
            edit = item.text_edit
            if not isinstance(edit, TextEdit) or not edit.new_text:
                continue
            segment = edit.new_text
            base = committed
            if segment.startswith("[") and base.endswith("."):
                base = base[:-1]
            elif segment[:1] in {'"', "'"} and base[-1:] in {'"', "'"}:
                base = base[:-1]
            full = base + segment
            item.text_edit = TextEdit(range=edit_range, new_text=full)
            item.filter_text = "${" + full if directly_after_opener else full
        return items

    # Registry-type strategies.

    def _type_items(
        self,
        request: _Request,
        names: list[str],
        detail: str,
        data_for: Callable[[str], dict],
        kind: CompletionItemKind = CompletionItemKind.EnumMember,
    ) -> list[CompletionItem]:
        items = []
        for name in names:
            if not matches_prefix(name, request.prefix):
                continue
            items.append(
                make_item(
                    name,
                    kind=kind,
                    detail=detail,
                    new_text=request.value_text(name),
                    edit_range=request.prefix_range(),
                    data=data_for(name),
                )
            )
        return items

    def _resource_types(self, request: _Request) -> list[CompletionItem]:
        registry = self.registries.resources
        if registry is None:
            return []
        check_deadline("resources.list_resource_types")
        return self._type_items(
            request,
            sorted(registry.list_resource_types()),
            "Resource type",
            lambda name: resolve_data_payload(ResourceTypeResolveData(resource_type=name)),
            CompletionItemKind.Class,
        )

    def _data_source_types(self, request: _Request) -> list[CompletionItem]:
        registry = self.registries.data_sources
        if registry is None:
            return []
        check_deadline("data_sources.list_data_source_types")
        return self._type_items(
            request,
            sorted(registry.list_data_source_types()),
            "Data source type",
            lambda name: resolve_data_payload(DataSourceTypeResolveData(data_source_type=name)),
            CompletionItemKind.Class,
        )

    def _variable_types(self, request: _Request) -> list[CompletionItem]:
        items = self._type_items(
            request, list(fields.CORE_VARIABLE_TYPES), "Core variable type",
            lambda _: inert("coreVariableType"),
        )
        registry = self.registries.custom_variable_types
        if registry is None:
            return items
        check_deadline("custom_variable_types.list")
        items.extend(
            self._type_items(
                request,
                sorted(registry.list_custom_variable_types()),
                "Custom variable type",
                lambda name: resolve_data_payload(VariableTypeResolveData(variable_type=name)),
                CompletionItemKind.Class,
            )
        )
        return items

    def _static_types(
        self, names: tuple[str, ...], detail: str, tag: str
    ) -> Callable[[_Request], list[CompletionItem]]:
        def _strategy(request: _Request) -> list[CompletionItem]:
            return self._type_items(request, list(names), detail, lambda _: inert(tag))

        return _strategy

    def _data_source_type_for(self, request: _Request) -> str | None:
        name = request.context.entity_name
        if request.blueprint is None or name is None:
            return None
        data_source = request.blueprint.datasources.get(name)
        return data_source.type if data_source is not None and data_source.type else None

    def _filter_fields(self, request: _Request) -> list[CompletionItem]:
        registry = self.registries.data_sources
        data_source_type = self._data_source_type_for(request)
        if registry is None or data_source_type is None:
            return []
        check_deadline("data_sources.get_filter_fields")
        filter_fields = registry.get_filter_fields(data_source_type)
        items = []
        for name in sorted(filter_fields):
            if not matches_prefix(name, request.prefix):
                continue
            items.append(
                make_item(
                    name,
                    kind=CompletionItemKind.Enum,
                    detail="Data source filter field",
                    new_text=request.value_text(name),
                    edit_range=request.prefix_range(),
                    documentation=filter_fields[name].description,
                    data=inert("dataSourceFilterField"),
                )
            )
        return items

    def _filter_operators(self, request: _Request) -> list[CompletionItem]:
        items = []
        for operator in fields.DATA_SOURCE_FILTER_OPERATORS:
            if not matches_prefix(operator, request.prefix):
                continue
            items.append(
                make_item(
                    f'"{operator}"',
                    kind=CompletionItemKind.Operator,
                    detail="Data source filter operator",
                    new_text=request.value_text(operator),
                    edit_range=request.prefix_range(),
                    filter_text=operator,
                    data=inert("dataSourceFilterOperator"),
                )
            )
        return items

    # Definition-field and schema-driven strategies.

    def _definition_fields(self, request: _Request) -> list[CompletionItem]:
        kind = request.context.kind
        tag = {
            _K.RESOURCE_DEFINITION_FIELD: "resourceDefinitionField",
            _K.BLUEPRINT_TOP_LEVEL_FIELD: "blueprintTopLevelField",
            _K.DATA_SOURCE_DEFINITION_FIELD: "dataSourceDefinitionField",
        }.get(kind, "definitionField")
        items = []
        for name, description in fields.DEFINITION_FIELD_TABLES[kind]:
            if not matches_prefix(name, request.prefix):
                continue
            items.append(
                make_item(
                    name,
                    kind=CompletionItemKind.Field,
                    detail="Definition field",
                    new_text=format_key(name, request.format),
                    edit_range=request.prefix_range(),
                    documentation=description,
                    data=inert(tag),
                )
            )
        return items

    def _spec_schema(self, request: _Request) -> tuple[SpecSchema | None, CompletionItem | None]:
        resource = request.resource()
        if resource is None:
            return None, None
        return self._spec_schema_for(resource, request.position)

    def _spec_schema_for(
        self, resource: Resource, position: Position
    ) -> tuple[SpecSchema | None, CompletionItem | None]:
        """The spec schema for resource, or a hint item when there is none."""
        registry = self.registries.resources
        if not resource.type or registry is None:
            return None, None
        check_deadline("resources.get_spec_definition")
        if not registry.has_resource_type(resource.type):
            return None, hint_item(RESOURCE_TYPE_NOT_FOUND.format(resource.type), position)
        definition = registry.get_spec_definition(resource.type)
        if definition.schema is None:
            return None, hint_item(NO_SPEC_SCHEMA.format(resource.type), position)
        return definition.schema, None

    def _spec_fields(self, request: _Request) -> list[CompletionItem]:
        schema, hint = self._spec_schema(request)
        if hint is not None:
            return [hint]
        target = navigate_schema(schema, request.context.path[3:])
        if target is None or target.type is not SchemaType.OBJECT:
            return []
        items = []
        for name in sorted(target.attributes):
            attribute = target.attributes[name]
            if attribute.computed or not matches_prefix(name, request.prefix):
                continue
            items.append(
                make_item(
                    name,
                    kind=CompletionItemKind.Field,
                    detail=f"Resource spec field ({attribute.type.value})",
                    new_text=format_key(name, request.format),
                    edit_range=request.prefix_range(),
                    documentation=attribute.documentation(),
                    data=inert("resourceSpecField"),
                )
            )
        return items

    def _spec_field_values(self, request: _Request) -> list[CompletionItem]:
        schema, hint = self._spec_schema(request)
        if hint is not None:
            return [hint]
        target = navigate_schema(schema, request.context.path[3:])
        if target is None:
            return []
        values = [str(value) for value in target.allowed_values]
        literal = not values and target.type is SchemaType.BOOLEAN
        if literal:
            values = ["true", "false"]
        items = []
        for value in values:
            if not matches_prefix(value, request.prefix):
                continue
            if literal:
                new_text = value if request.prefix.has_leading_space else f" {value}"
            else:
                new_text = request.value_text(value)
            items.append(
                make_item(
                    value,
                    kind=CompletionItemKind.EnumMember,
                    detail=f"Allowed value ({target.type.value})",
                    new_text=new_text,
                    edit_range=request.prefix_range(),
                    data=inert("resourceSpecFieldValue"),
                )
            )
        return items

    # Link annotations.

    def _annotation_keys(self, request: _Request) -> list[CompletionItem]:
        name = request.context.entity_name
        if request.blueprint is None or name is None:
            return []
        items = []
        for annotation, with_context in self.link_inferer.annotation_names(request.blueprint, name):
            if not matches_prefix(annotation, request.prefix):
                continue
            items.append(
                make_item(
                    annotation,
                    kind=CompletionItemKind.Field,
                    detail="Link annotation",
                    new_text=format_key(annotation, request.format),
                    edit_range=request.prefix_range(),
                    documentation=with_context.definition.description,
                    data=inert("annotationKey"),
                )
            )
        return items

    def _annotation_values(self, request: _Request) -> list[CompletionItem]:
        name = request.context.entity_name
        if request.blueprint is None or name is None:
            return []
        key = request.context.path[4]
        with_context = self.link_inferer.find_annotation_definition(request.blueprint, name, key)
        if with_context is None:
            return []
        definition = with_context.definition
        values = [str(value) for value in definition.allowed_values]
        if not values and definition.type is SchemaType.BOOLEAN:
            values = ["true", "false"]
        items = []
        for value in values:
            if not matches_prefix(value, request.prefix):
                continue
            items.append(
                make_item(
                    value,
                    kind=CompletionItemKind.EnumMember,
                    detail=f"Allowed value ({definition.type.value})",
                    new_text=request.value_text(value),
                    edit_range=request.prefix_range(),
                    documentation=definition.description,
                    data=inert("annotationValue"),
                )
            )
        return items

    # Value strategies.

    def _other_resource_names(self, tag: str) -> Callable[[_Request], list[CompletionItem]]:
        def _strategy(request: _Request) -> list[CompletionItem]:
            if request.blueprint is None:
                return []
            current = request.context.entity_name
            items = []
            for name in request.blueprint.resources:
                if name == current or not matches_prefix(name, request.prefix):
                    continue
                items.append(
                    make_item(
                        name,
                        kind=CompletionItemKind.Reference,
                        detail=f"Resource ({request.blueprint.resources[name].type})",
                        new_text=request.value_text(name),
                        edit_range=request.prefix_range(),
                        data=inert(tag),
                    )
                )
            return items

        return _strategy

    def _versions(self, request: _Request) -> list[CompletionItem]:
        return self._type_items(
            request, list(fields.SUPPORTED_VERSIONS), "Blueprint version",
            lambda _: inert("version"), CompletionItemKind.Value,
        )

    def _variable_defaults(self, request: _Request) -> list[CompletionItem]:
        registry = self.registries.custom_variable_types
        name = request.context.entity_name
        if registry is None or request.blueprint is None or name is None:
            return []
        variable = request.blueprint.variables.get(name)
        if variable is None or variable.type in fields.CORE_VARIABLE_TYPES:
            return []
        check_deadline("custom_variable_types.get_options")
        options = registry.get_options(variable.type)
        items = []
        for label, value in options.items():
            if not matches_prefix(value, request.prefix):
                continue
            items.append(
                make_item(
                    value,
                    kind=CompletionItemKind.EnumMember,
                    detail=f"{variable.type} option: {label}",
                    new_text=request.value_text(value),
                    edit_range=request.prefix_range(),
                    data=inert("variable"),
                )
            )
        return items

    # Export `field` strategies.

    def _export_value_text(self, request: _Request, text: str) -> str:
        """Export references are typed without an opener; keep the string open."""
        if request.format is DocumentFormat.JSONC:
            if request.prefix.has_leading_quote:
                return text
            return text if request.prefix.has_leading_space else f' "{text}'
        return text

    def _export_namespaces(self, request: _Request) -> list[CompletionItem]:
        if request.blueprint is None:
            return []
        names = request.blueprint.names_by_namespace()
        items = []
        for namespace in fields.EXPORT_FIELD_NAMESPACES:
            if not names.get(namespace) or not matches_prefix(namespace, request.prefix):
                continue
            items.append(
                make_item(
                    namespace,
                    kind=CompletionItemKind.Module,
                    detail="Export field namespace",
                    new_text=self._export_value_text(request, f"{namespace}."),
                    edit_range=request.prefix_range(),
                    data=inert("exportField"),
                )
            )
        return items

    def _export_entities(self, request: _Request) -> list[CompletionItem]:
        if request.blueprint is None:
            return []
        namespace = request.context.extra.get("namespace", "")
        partial = request.prefix.filter_prefix.rpartition(".")[2]
        items = []
        for name in sorted(request.blueprint.names_by_namespace().get(namespace, ())):
            if not matches_prefix(name, partial):
                continue
            items.append(
                make_item(
                    name,
                    kind=CompletionItemKind.Reference,
                    detail=f"Export field reference ({namespace})",
                    new_text=name,
                    edit_range=insert_range(request.position, len(partial)),
                    data=inert("exportField"),
                )
            )
        return items

    def _export_resource_properties(self, request: _Request) -> list[CompletionItem]:
        if request.blueprint is None:
            return []
        segments, partial = split_segments(request.context.extra.get("reference", ""))
        if len(segments) < 2 or segments[1] not in request.blueprint.resources:
            return []
        return self._resource_property_items(
            request, segments[1], tuple(segments[2:]), partial, "exportField"
        )

    # Substitution strategies.

    def _substitution_partial(self, request: _Request) -> str:
        try:
            _, text = active_substitution(request.cursor.text_before)
        except BlueprintLSError:
            return ""
        return split_segments(expression_tail(text))[1]

    def _substitution_roots(self, request: _Request) -> list[CompletionItem]:
        partial = self._substitution_partial(request)
        blueprint = request.blueprint or Blueprint()
        candidates: list[_RootCandidate] = []
        for name, resource in blueprint.resources.items():
            detail = f"Resource ({resource.type})"
            candidates.append(
                _RootCandidate(f"resources.{name}", "1-", CompletionItemKind.Reference, detail, inert("resource"))
            )
            candidates.append(
                _RootCandidate(name, "1-1-", CompletionItemKind.Reference, detail, inert("resourceStandalone"))
            )
        for name, variable in blueprint.variables.items():
            candidates.append(
                _RootCandidate(
                    f"variables.{name}", "2-", CompletionItemKind.Variable,
                    f"Variable ({variable.type})", inert("variable"),
                )
            )
        if self.registries.functions is not None:
            check_deadline("functions.list_functions")
            for name in self.registries.functions.list_functions():
                candidates.append(
                    _RootCandidate(
                        name, "3-", CompletionItemKind.Function, "Function",
                        resolve_data_payload(FunctionResolveData(function_name=name)),
                    )
                )
        for name, data_source in blueprint.datasources.items():
            candidates.append(
                _RootCandidate(
                    f"datasources.{name}", "4-", CompletionItemKind.Reference,
                    f"Data source ({data_source.type})", inert("dataSource"),
                )
            )
        for name, value in blueprint.values.items():
            candidates.append(
                _RootCandidate(
                    f"values.{name}", "5-", CompletionItemKind.Value,
                    f"Value ({value.type})", inert("value"),
                )
            )
        for name in blueprint.includes:
            candidates.append(
                _RootCandidate(
                    f"children.{name}", "6-", CompletionItemKind.Module,
                    "Child blueprint", inert("include"),
                )
            )
        items = []
        for candidate in candidates:
            if not matches_prefix(candidate.label, partial):
                continue
            new_text = candidate.label
            if candidate.kind is CompletionItemKind.Function:
                new_text += "("
            items.append(
                make_item(
                    candidate.label,
                    kind=candidate.kind,
                    detail=candidate.detail,
                    new_text=new_text,
                    edit_range=insert_range(request.position, len(partial)),
                    sort_text=f"{candidate.sort_prefix}{candidate.label}",
                    data=candidate.data,
                )
            )
        return items

    def _namespace_refs(self, namespace: str) -> Callable[[_Request], list[CompletionItem]]:
        kind, tag = {
            "resources": (CompletionItemKind.Reference, "resource"),
            "variables": (CompletionItemKind.Variable, "variable"),
            "datasources": (CompletionItemKind.Reference, "dataSource"),
            "values": (CompletionItemKind.Value, "value"),
            "children": (CompletionItemKind.Module, "include"),
        }[namespace]

        def _strategy(request: _Request) -> list[CompletionItem]:
            if request.blueprint is None:
                return []
            partial = self._substitution_partial(request)
            items = []
            for name in sorted(request.blueprint.names_by_namespace().get(namespace, ())):
                if not matches_prefix(name, partial):
                    continue
                items.append(
                    make_item(
                        name,
                        kind=kind,
                        detail=namespace,
                        new_text=name,
                        edit_range=insert_range(request.position, len(partial)),
                        data=inert(tag),
                    )
                )
            return items

        return _strategy

    def _key_item(
        self,
        request: _Request,
        key: str,
        partial: str,
        *,
        kind: CompletionItemKind,
        detail: str,
        documentation: str | None,
        tag: str,
    ) -> CompletionItem:
        """An item for a map key or attribute reached by ``.`` or ``[``."""
        bracket = re.search(
            r"\[([\"']?)" + re.escape(partial) + r"$", request.cursor.text_before
        )
        enclosing = request.cursor.enclosing_quote
        if bracket is not None:
            new_text = format_map_key_for_bracket_insertion(
                key, enclosing, quote=bracket.group(1) or None
            )
            edit_range = insert_range(request.position, len(partial))
        elif needs_bracket_notation(key):
            new_text = format_bracket_notation(key, enclosing)
            edit_range = bracket_insert_range(request.position, len(partial))
        else:
            new_text = key
            edit_range = insert_range(request.position, len(partial))
        return make_item(
            key,
            kind=kind,
            detail=detail,
            new_text=new_text,
            edit_range=edit_range,
            documentation=documentation,
            data=inert(tag),
        )

    def _resource_property_items(
        self,
        request: _Request,
        resource_name: str,
        path: tuple[str, ...],
        partial: str,
        tag: str,
    ) -> list[CompletionItem]:
        blueprint = request.blueprint
        if blueprint is None:
            return []
        resource = blueprint.resources[resource_name]
        entries: list[tuple[str, str, str | None]] = []
        if not path:
            entries = [(name, "Resource property", doc) for name, doc in fields.RESOURCE_PROPERTIES]
        elif path == ("metadata",):
            entries = [(name, "Resource metadata", doc) for name, doc in fields.RESOURCE_METADATA_PROPERTIES]
        elif path == ("metadata", "labels"):
            labels = resource.metadata.labels if resource.metadata else {}
            entries = [(name, "Resource label", None) for name in sorted(labels)]
        elif path == ("metadata", "annotations"):
            declared = resource.metadata.annotations if resource.metadata else {}
            names = list(declared)
            for name, _ in self.link_inferer.annotation_names(blueprint, resource_name):
                if name not in declared:
                    names.append(name)
            entries = [(name, "Resource annotation", None) for name in names]
        elif path[0] in {"spec", "state"}:
            # State mirrors the spec, computed fields included.
            schema, hint = self._spec_schema_for(resource, request.position)
            if hint is not None:
                return [hint]
            target = navigate_schema(schema, path[1:])
            if target is not None and target.type is SchemaType.OBJECT:
                entries = [
                    (
                        name,
                        f"{'Computed' if attribute.computed else 'Spec'} field ({attribute.type.value})",
                        attribute.documentation() or None,
                    )
                    for name, attribute in sorted(target.attributes.items())
                ]
        return [
            self._key_item(
                request, name, partial,
                kind=CompletionItemKind.Property,
                detail=detail,
                documentation=documentation,
                tag=tag,
            )
            for name, detail, documentation in entries
            if matches_prefix(name, partial)
        ]

    def _resource_properties(self, request: _Request) -> list[CompletionItem]:
        substitution = request.context.substitution
        if substitution is None:
            return []
        return self._resource_property_items(
            request,
            substitution.entity_name,
            substitution.path,
            substitution.filter_prefix,
            "resourceProperty",
        )

    def _data_source_properties(self, request: _Request) -> list[CompletionItem]:
        substitution = request.context.substitution
        if substitution is None or substitution.path or request.blueprint is None:
            return []
        data_source = request.blueprint.datasources[substitution.entity_name]
        return [
            self._key_item(
                request, name, substitution.filter_prefix,
                kind=CompletionItemKind.Field,
                detail=f"Data source export ({export.type})",
                documentation=export.description,
                tag="dataSourceProperty",
            )
            for name, export in sorted(data_source.exports.items())
            if matches_prefix(name, substitution.filter_prefix)
        ]

    def _value_properties(self, request: _Request) -> list[CompletionItem]:
        substitution = request.context.substitution
        if substitution is None or request.blueprint is None:
            return []
        node = request.blueprint.values[substitution.entity_name].value
        for segment in substitution.path:
            if isinstance(node, dict):
                node = node.get(segment)
            elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
                node = node[int(segment)]
            else:
                return []
        if not isinstance(node, dict):
            return []
        return [
            self._key_item(
                request, key, substitution.filter_prefix,
                kind=CompletionItemKind.Field,
                detail="Value field",
                documentation=None,
                tag="valueProperty",
            )
            for key in sorted(node)
            if matches_prefix(key, substitution.filter_prefix)
        ]

    def _child_properties(self, request: _Request) -> list[CompletionItem]:
        substitution = request.context.substitution
        if substitution is None or substitution.path or request.blueprint is None:
            return []
        include = request.blueprint.includes[substitution.entity_name]
        exports = self.child_resolver.child_exports(request.document.uri, include)
        return [
            self._key_item(
                request, name, substitution.filter_prefix,
                kind=CompletionItemKind.Field,
                detail=f"Child export ({export.type})",
                documentation=export.description,
                tag="childExport",
            )
            for name, export in sorted(exports.items())
            if matches_prefix(name, substitution.filter_prefix)
        ]
