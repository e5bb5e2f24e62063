"""Static vocabularies offered by completion."""

from __future__ import annotations

from blueprint_ls.completion.context import CompletionContextKind

FieldTable = tuple[tuple[str, str], ...]

RESOURCE_FIELDS: FieldTable = (
    ("type", "The resource type identifier (e.g. `aws/dynamodb/table`); selects the provider that manages the resource."),
    ("description", "Human-readable description of what the resource is for."),
    ("spec", "Provider-specific configuration for the resource."),
    ("metadata", "Optional `displayName`, `labels`, `annotations` and `custom` metadata."),
    ("condition", "Expression deciding whether the resource is deployed; supports `and`, `or` and `not`."),
    ("each", "Creates one resource per item of an array or map; `elem` refers to the current item."),
    ("linkSelector", "Label criteria used to link this resource to others automatically."),
    ("dependsOn", "Resources that must be deployed before this one."),
)

VARIABLE_FIELDS: FieldTable = (
    ("type", "Variable type: string, integer, float, boolean or a custom type."),
    ("description", "Human-readable description of the variable."),
    ("secret", "Mask the variable's value in logs and output."),
    ("default", "Value used when none is provided."),
    ("allowedValues", "Values the variable is restricted to."),
)

VALUE_FIELDS: FieldTable = (
    ("type", "Value type: string, integer, float, boolean, array or object."),
    ("value", "The computed value; may contain substitutions."),
    ("description", "Human-readable description of the value."),
    ("secret", "Mask the value in logs and output."),
)

DATA_SOURCE_FIELDS: FieldTable = (
    ("type", "The data source type identifier (e.g. `aws/vpc`)."),
    ("metadata", "Optional `displayName`, `annotations` and `custom` metadata."),
    ("filter", "Criteria selecting which external instance to read."),
    ("exports", "Fields exported from the data source."),
    ("description", "Human-readable description of the data source."),
)

DATA_SOURCE_FILTER_FIELDS: FieldTable = (
    ("field", "Data source field to filter on."),
    ("operator", "Comparison operator such as `=`, `in` or `starts with`."),
    ("search", "Value or values to compare against; may contain substitutions."),
)

DATA_SOURCE_EXPORT_FIELDS: FieldTable = (
    ("type", "Exported field type: string, integer, float, boolean or array."),
    ("aliasFor", "Provider field name when it differs from the export name."),
    ("description", "Human-readable description of the exported field."),
)

DATA_SOURCE_METADATA_FIELDS: FieldTable = (
    ("displayName", "Human-readable name for the data source."),
    ("annotations", "Key-value pairs that configure data source behaviour."),
    ("custom", "Free-form metadata for provider-specific use."),
)

INCLUDE_FIELDS: FieldTable = (
    ("path", "Path to the child blueprint, local or remote."),
    ("variables", "Variables passed to the child blueprint."),
    ("metadata", "Extra metadata consumed by include resolver plugins."),
    ("description", "Human-readable description of the included blueprint."),
)

EXPORT_FIELDS: FieldTable = (
    ("type", "Export type: string, integer, float, boolean, array or object."),
    ("field", "Reference to the value being exported."),
    ("description", "Human-readable description of the export."),
)

RESOURCE_METADATA_FIELDS: FieldTable = (
    ("displayName", "Human-readable name for the resource."),
    ("labels", "Key-value pairs used by link selectors to match resources."),
    ("annotations", "Key-value pairs of extra metadata; not used for selection."),
    ("custom", "Free-form metadata."),
)

LINK_SELECTOR_FIELDS: FieldTable = (
    ("byLabel", "Labels a resource must carry to be linked."),
    ("exclude", "Names of resources never linked by this selector."),
)

BLUEPRINT_TOP_LEVEL_FIELDS: FieldTable = (
    ("version", "Blueprint specification version (e.g. `2025-11-02`)."),
    ("transform", "Transforms applied to the blueprint."),
    ("variables", "Input variables that parameterise the blueprint."),
    ("values", "Values computed from variables and other sources."),
    ("include", "Child blueprints included in this blueprint."),
    ("resources", "Infrastructure resources defined by the blueprint."),
    ("datasources", "External data sources for existing infrastructure."),
    ("exports", "Values exported for use outside the blueprint."),
    ("metadata", "Blueprint-level metadata."),
)

DEFINITION_FIELD_TABLES: dict[CompletionContextKind, FieldTable] = {
    CompletionContextKind.BLUEPRINT_TOP_LEVEL_FIELD: BLUEPRINT_TOP_LEVEL_FIELDS,
    CompletionContextKind.RESOURCE_DEFINITION_FIELD: RESOURCE_FIELDS,
    CompletionContextKind.VARIABLE_DEFINITION_FIELD: VARIABLE_FIELDS,
    CompletionContextKind.VALUE_DEFINITION_FIELD: VALUE_FIELDS,
    CompletionContextKind.DATA_SOURCE_DEFINITION_FIELD: DATA_SOURCE_FIELDS,
    CompletionContextKind.DATA_SOURCE_FILTER_DEFINITION_FIELD: DATA_SOURCE_FILTER_FIELDS,
    CompletionContextKind.DATA_SOURCE_EXPORT_DEFINITION_FIELD: DATA_SOURCE_EXPORT_FIELDS,
    CompletionContextKind.DATA_SOURCE_METADATA_FIELD: DATA_SOURCE_METADATA_FIELDS,
    CompletionContextKind.INCLUDE_DEFINITION_FIELD: INCLUDE_FIELDS,
    CompletionContextKind.EXPORT_DEFINITION_FIELD: EXPORT_FIELDS,
    CompletionContextKind.RESOURCE_METADATA_FIELD: RESOURCE_METADATA_FIELDS,
    CompletionContextKind.LINK_SELECTOR_FIELD: LINK_SELECTOR_FIELDS,
}

# Properties reachable from `${resources.<name>.`
RESOURCE_PROPERTIES: FieldTable = (
    ("spec", "The resource's spec fields, including computed outputs."),
    ("metadata", "The resource's `displayName`, `labels`, `annotations` and `custom` metadata."),
    ("state", "The resource's deployed state."),
)

RESOURCE_METADATA_PROPERTIES: FieldTable = (
    ("displayName", "Human-readable name for the resource."),
    ("labels", "Labels attached to the resource."),
    ("annotations", "Annotations attached to the resource."),
    ("custom", "Custom metadata attached to the resource."),
)

CORE_VARIABLE_TYPES = ("string", "integer", "float", "boolean")
VALUE_TYPES = ("string", "integer", "float", "boolean", "array", "object")
EXPORT_TYPES = VALUE_TYPES
DATA_SOURCE_FIELD_TYPES = ("string", "integer", "float", "boolean", "array")

DATA_SOURCE_FILTER_OPERATORS = (
    "=",
    "!=",
    "in",
    "not in",
    "has key",
    "not has key",
    "contains",
    "not contains",
    "starts with",
    "not starts with",
    "ends with",
    "not ends with",
    ">",
    "<",
    ">=",
    "<=",
)

SUPPORTED_VERSIONS = ("2025-11-02",)

EXPORT_FIELD_NAMESPACES = ("resources", "variables", "values", "children", "datasources")
