"""Classify the cursor into a completion context kind."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from blueprint_ls.completion.subpath import (
    NAMESPACES,
    SubstitutionPath,
    active_substitution,
    expression_tail,
    parse_substitution_path,
)
from blueprint_ls.docmodel import CursorContext, DocumentFormat
from blueprint_ls.exceptions import NoActiveSubstitution


class KindGroup(Enum):
    REGISTRY_TYPE = "registryType"
    DEFINITION_FIELD = "definitionField"
    VALUE = "value"
    EXPORT_FIELD = "exportField"
    SUBSTITUTION = "substitution"
    NONE = "none"


class CompletionContextKind(Enum):
    UNKNOWN = ("unknown", KindGroup.NONE)

    RESOURCE_TYPE = ("resourceType", KindGroup.REGISTRY_TYPE)
    DATA_SOURCE_TYPE = ("dataSourceType", KindGroup.REGISTRY_TYPE)
    VARIABLE_TYPE = ("variableType", KindGroup.REGISTRY_TYPE)
    VALUE_TYPE = ("valueType", KindGroup.REGISTRY_TYPE)
    EXPORT_TYPE = ("exportType", KindGroup.REGISTRY_TYPE)
    DATA_SOURCE_FIELD_TYPE = ("dataSourceFieldType", KindGroup.REGISTRY_TYPE)
    DATA_SOURCE_FILTER_FIELD = ("dataSourceFilterField", KindGroup.REGISTRY_TYPE)
    DATA_SOURCE_FILTER_OPERATOR = ("dataSourceFilterOperator", KindGroup.REGISTRY_TYPE)

    BLUEPRINT_TOP_LEVEL_FIELD = ("blueprintTopLevelField", KindGroup.DEFINITION_FIELD)
    RESOURCE_DEFINITION_FIELD = ("resourceDefinitionField", KindGroup.DEFINITION_FIELD)
    VARIABLE_DEFINITION_FIELD = ("variableDefinitionField", KindGroup.DEFINITION_FIELD)
    VALUE_DEFINITION_FIELD = ("valueDefinitionField", KindGroup.DEFINITION_FIELD)
    DATA_SOURCE_DEFINITION_FIELD = ("dataSourceDefinitionField", KindGroup.DEFINITION_FIELD)
    DATA_SOURCE_FILTER_DEFINITION_FIELD = (
        "dataSourceFilterDefinitionField",
        KindGroup.DEFINITION_FIELD,
    )
    DATA_SOURCE_EXPORT_DEFINITION_FIELD = (
        "dataSourceExportDefinitionField",
        KindGroup.DEFINITION_FIELD,
    )
    DATA_SOURCE_METADATA_FIELD = ("dataSourceMetadataField", KindGroup.DEFINITION_FIELD)
    INCLUDE_DEFINITION_FIELD = ("includeDefinitionField", KindGroup.DEFINITION_FIELD)
    EXPORT_DEFINITION_FIELD = ("exportDefinitionField", KindGroup.DEFINITION_FIELD)
    RESOURCE_METADATA_FIELD = ("resourceMetadataField", KindGroup.DEFINITION_FIELD)
    LINK_SELECTOR_FIELD = ("linkSelectorField", KindGroup.DEFINITION_FIELD)
    RESOURCE_SPEC_FIELD = ("resourceSpecField", KindGroup.DEFINITION_FIELD)
    RESOURCE_ANNOTATION_KEY = ("resourceAnnotationKey", KindGroup.DEFINITION_FIELD)

    RESOURCE_SPEC_FIELD_VALUE = ("resourceSpecFieldValue", KindGroup.VALUE)
    RESOURCE_ANNOTATION_VALUE = ("resourceAnnotationValue", KindGroup.VALUE)
    LINK_SELECTOR_EXCLUDE_VALUE = ("linkSelectorExcludeValue", KindGroup.VALUE)
    DEPENDS_ON_VALUE = ("dependsOnValue", KindGroup.VALUE)
    VERSION_VALUE = ("versionValue", KindGroup.VALUE)
    VARIABLE_DEFAULT_VALUE = ("variableDefaultValue", KindGroup.VALUE)

    EXPORT_FIELD_NAMESPACE = ("exportFieldNamespace", KindGroup.EXPORT_FIELD)
    EXPORT_FIELD_ENTITY = ("exportFieldEntity", KindGroup.EXPORT_FIELD)
    EXPORT_FIELD_RESOURCE_PROPERTY = ("exportFieldResourceProperty", KindGroup.EXPORT_FIELD)

    STRING_SUB = ("stringSub", KindGroup.SUBSTITUTION)
    STRING_SUB_RESOURCE_REF = ("stringSubResourceRef", KindGroup.SUBSTITUTION)
    STRING_SUB_RESOURCE_PROPERTY = ("stringSubResourceProperty", KindGroup.SUBSTITUTION)
    STRING_SUB_VARIABLE_REF = ("stringSubVariableRef", KindGroup.SUBSTITUTION)
    STRING_SUB_DATA_SOURCE_REF = ("stringSubDataSourceRef", KindGroup.SUBSTITUTION)
    STRING_SUB_DATA_SOURCE_PROPERTY = ("stringSubDataSourceProperty", KindGroup.SUBSTITUTION)
    STRING_SUB_VALUE_REF = ("stringSubValueRef", KindGroup.SUBSTITUTION)
    STRING_SUB_VALUE_PROPERTY = ("stringSubValueProperty", KindGroup.SUBSTITUTION)
    STRING_SUB_CHILD_REF = ("stringSubChildRef", KindGroup.SUBSTITUTION)
    STRING_SUB_CHILD_PROPERTY = ("stringSubChildProperty", KindGroup.SUBSTITUTION)

    def __init__(self, tag: str, group: KindGroup) -> None:
        self.tag = tag
        self.group = group

    def enabled_for(
        self, document_format: DocumentFormat, key_completions_in_jsonc: bool = False
    ) -> bool:
        """Field-name kinds are left to the host editor's own JSON support."""
        if self is CompletionContextKind.UNKNOWN:
            return False
        if document_format is DocumentFormat.JSONC and not key_completions_in_jsonc:
            return self.group is not KindGroup.DEFINITION_FIELD
        return True

    @property
    def is_substitution(self) -> bool:
        return self.group is KindGroup.SUBSTITUTION


@dataclass(frozen=True)
class CompletionContext:
    kind: CompletionContextKind
    path: tuple[str, ...] = ()
    substitution: SubstitutionPath | None = None
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def entity_name(self) -> str | None:
        return self.path[1] if len(self.path) > 1 else None


_K = CompletionContextKind

_TYPE_FIELDS = {
    "resources": _K.RESOURCE_TYPE,
    "datasources": _K.DATA_SOURCE_TYPE,
    "variables": _K.VARIABLE_TYPE,
    "values": _K.VALUE_TYPE,
    "exports": _K.EXPORT_TYPE,
}

_SECTION_FIELDS = {
    "resources": _K.RESOURCE_DEFINITION_FIELD,
    "variables": _K.VARIABLE_DEFINITION_FIELD,
    "values": _K.VALUE_DEFINITION_FIELD,
    "datasources": _K.DATA_SOURCE_DEFINITION_FIELD,
    "include": _K.INCLUDE_DEFINITION_FIELD,
    "includes": _K.INCLUDE_DEFINITION_FIELD,
    "exports": _K.EXPORT_DEFINITION_FIELD,
}

_NAMESPACE_REFS = {
    "resources": _K.STRING_SUB_RESOURCE_REF,
    "variables": _K.STRING_SUB_VARIABLE_REF,
    "datasources": _K.STRING_SUB_DATA_SOURCE_REF,
    "values": _K.STRING_SUB_VALUE_REF,
    "children": _K.STRING_SUB_CHILD_REF,
}

_NAMESPACE_PROPERTIES = {
    "resources": _K.STRING_SUB_RESOURCE_PROPERTY,
    "datasources": _K.STRING_SUB_DATA_SOURCE_PROPERTY,
    "values": _K.STRING_SUB_VALUE_PROPERTY,
    "children": _K.STRING_SUB_CHILD_PROPERTY,
}

# `${resources.` or `${resources["` with no entity name committed yet.
_NAMESPACE_ONLY = re.compile(
    r"^(" + "|".join(NAMESPACES) + r")(?:\.|\[[\"']?)[A-Za-z0-9_\-]*$"
)


def _classify_substitution(
    text_before: str, names_by_namespace: dict[str, set[str]]
) -> CompletionContext | None:
    try:
        _, text = active_substitution(text_before)
    except NoActiveSubstitution:
        return None
    tail = expression_tail(text)
    namespace_only = _NAMESPACE_ONLY.match(tail)
    if namespace_only is not None:
        return CompletionContext(kind=_NAMESPACE_REFS[namespace_only.group(1)])
    parsed = parse_substitution_path(text_before, names_by_namespace)
    if parsed is not None:
        kind = _NAMESPACE_PROPERTIES.get(parsed.namespace)
        if kind is None:
            return CompletionContext(kind=_K.UNKNOWN)
        return CompletionContext(
            kind=kind,
            path=(parsed.namespace, parsed.entity_name, *parsed.path),
            substitution=parsed,
        )
    return CompletionContext(kind=_K.STRING_SUB)


def _classify_export_field(value: str, path: tuple[str, ...]) -> CompletionContext:
    value = value.strip("\"' ")
    if "." not in value:
        return CompletionContext(kind=_K.EXPORT_FIELD_NAMESPACE, path=path)
    namespace, _, rest = value.partition(".")
    if namespace == "resources" and "." in rest:
        return CompletionContext(
            kind=_K.EXPORT_FIELD_RESOURCE_PROPERTY,
            path=path,
            extra={"namespace": namespace, "reference": value},
        )
    if "." in rest:
        return CompletionContext(kind=_K.UNKNOWN, path=path)
    return CompletionContext(
        kind=_K.EXPORT_FIELD_ENTITY, path=path, extra={"namespace": namespace}
    )


def _classify_value(path: tuple[str, ...], cursor: CursorContext) -> CompletionContext:
    size = len(path)
    if size == 3 and path[2] == "type" and path[0] in _TYPE_FIELDS:
        return CompletionContext(kind=_TYPE_FIELDS[path[0]], path=path)
    if path[:1] == ("datasources",) and size >= 4:
        if size == 5 and path[2] == "exports" and path[4] == "type":
            return CompletionContext(kind=_K.DATA_SOURCE_FIELD_TYPE, path=path)
        if path[2] == "filter" and path[-1] == "field":
            return CompletionContext(kind=_K.DATA_SOURCE_FILTER_FIELD, path=path)
        if path[2] == "filter" and path[-1] == "operator":
            return CompletionContext(kind=_K.DATA_SOURCE_FILTER_OPERATOR, path=path)
    if size == 3 and path[0] == "exports" and path[2] == "field":
        value = cursor.text_before.rsplit(":", 1)[-1]
        return _classify_export_field(value, path)
    if path == ("version",):
        return CompletionContext(kind=_K.VERSION_VALUE, path=path)
    if size == 3 and path[0] == "variables" and path[2] == "default":
        return CompletionContext(kind=_K.VARIABLE_DEFAULT_VALUE, path=path)
    if path[:1] == ("resources",) and size >= 3:
        if size == 5 and path[2:4] == ("metadata", "annotations"):
            return CompletionContext(kind=_K.RESOURCE_ANNOTATION_VALUE, path=path)
        if path[2:] == ("linkSelector", "exclude"):
            return CompletionContext(kind=_K.LINK_SELECTOR_EXCLUDE_VALUE, path=path)
        if path[2:] == ("dependsOn",):
            return CompletionContext(kind=_K.DEPENDS_ON_VALUE, path=path)
        if path[2] == "spec" and size > 3:
            return CompletionContext(kind=_K.RESOURCE_SPEC_FIELD_VALUE, path=path)
    return CompletionContext(kind=_K.UNKNOWN, path=path)


def _classify_key(path: tuple[str, ...]) -> CompletionContext:
    size = len(path)
    if size == 0:
        return CompletionContext(kind=_K.BLUEPRINT_TOP_LEVEL_FIELD)
    if size == 2 and path[0] in _SECTION_FIELDS:
        return CompletionContext(kind=_SECTION_FIELDS[path[0]], path=path)
    if path[:1] == ("datasources",):
        if size == 3 and path[2] == "filter":
            return CompletionContext(kind=_K.DATA_SOURCE_FILTER_DEFINITION_FIELD, path=path)
        if size == 4 and path[2] == "exports":
            return CompletionContext(kind=_K.DATA_SOURCE_EXPORT_DEFINITION_FIELD, path=path)
        if size == 3 and path[2] == "metadata":
            return CompletionContext(kind=_K.DATA_SOURCE_METADATA_FIELD, path=path)
    if path[:1] == ("resources",) and size >= 3:
        if path[2:] == ("metadata",):
            return CompletionContext(kind=_K.RESOURCE_METADATA_FIELD, path=path)
        if path[2:] == ("linkSelector",):
            return CompletionContext(kind=_K.LINK_SELECTOR_FIELD, path=path)
        if path[2:] == ("metadata", "annotations"):
            return CompletionContext(kind=_K.RESOURCE_ANNOTATION_KEY, path=path)
        if path[2] == "spec":
            return CompletionContext(kind=_K.RESOURCE_SPEC_FIELD, path=path)
    return CompletionContext(kind=_K.UNKNOWN, path=path)


def classify(
    cursor: CursorContext,
    names_by_namespace: dict[str, set[str]] | None = None,
) -> CompletionContext:
    """Map a cursor onto the kind of construct being typed.

    Substitutions win over structure since a ``${`` can open inside almost
    any string value; the export ``field`` value is the one place where a
    bare reference is typed without an opener.
    """
    path = tuple(cursor.structural_path)
    names = names_by_namespace or {}
    value_position = cursor.in_list_item or not cursor.is_key_position()
    if value_position and len(path) == 3 and path[0] == "exports" and path[2] == "field":
        return _classify_value(path, cursor)
    substitution = _classify_substitution(cursor.text_before, names)
    if substitution is not None:
        return substitution
    if value_position:
        return _classify_value(path, cursor)
    return _classify_key(path)
