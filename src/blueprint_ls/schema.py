from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from blueprint_ls.config import DEFAULT_MAX_NUMBER_OF_PROBLEMS
from blueprint_ls.json_types import JSONObject, JSONValue


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TraceSettings(_WireModel):
    server: str = "off"


class DocSettings(_WireModel):
    trace: TraceSettings = TraceSettings()
    max_number_of_problems: int = Field(
        default=DEFAULT_MAX_NUMBER_OF_PROBLEMS, alias="maxNumberOfProblems", ge=1
    )
    show_any_type_warnings: bool = Field(default=False, alias="showAnyTypeWarnings")


class ResourceTypeResolveData(_WireModel):
    completion_type: Literal["resourceType"] = Field(
        default="resourceType", alias="completionType"
    )
    resource_type: str = Field(alias="resourceType")


class DataSourceTypeResolveData(_WireModel):
    completion_type: Literal["dataSourceType"] = Field(
        default="dataSourceType", alias="completionType"
    )
    data_source_type: str = Field(alias="dataSourceType")


class VariableTypeResolveData(_WireModel):
    completion_type: Literal["variableType"] = Field(
        default="variableType", alias="completionType"
    )
    variable_type: str = Field(alias="variableType")


class FunctionResolveData(_WireModel):
    completion_type: Literal["function"] = Field(
        default="function", alias="completionType"
    )
    function_name: str = Field(alias="functionName")


InertCompletionType = Literal[
    "annotationKey",
    "annotationValue",
    "blueprintTopLevelField",
    "childExport",
    "coreVariableType",
    "dataSourceExportField",
    "dataSourceFieldType",
    "dataSourceFilterField",
    "dataSourceFilterOperator",
    "dataSourceProperty",
    "dataSourceDefinitionField",
    "dataSource",
    "definitionField",
    "exportField",
    "exportType",
    "include",
    "linkSelectorExclude",
    "resource",
    "resourceDefinitionField",
    "resourceProperty",
    "resourceSpecField",
    "resourceSpecFieldValue",
    "resourceStandalone",
    "value",
    "valueProperty",
    "valueType",
    "variable",
    "version",
]


class InertResolveData(_WireModel):
    """Resolve data for items whose documentation is computed eagerly."""

    completion_type: InertCompletionType = Field(alias="completionType")


ResolveData = Annotated[
    Union[
        ResourceTypeResolveData,
        DataSourceTypeResolveData,
        VariableTypeResolveData,
        FunctionResolveData,
        InertResolveData,
    ],
    Field(discriminator="completion_type"),
]

_RESOLVE_DATA_ADAPTER: TypeAdapter[ResolveData] = TypeAdapter(ResolveData)


def resolve_data_payload(data: ResolveData) -> JSONObject:
    return data.model_dump(by_alias=True)


def inert(completion_type: InertCompletionType) -> JSONObject:
    return resolve_data_payload(InertResolveData(completion_type=completion_type))


def parse_resolve_data(payload: JSONValue) -> Optional[ResolveData]:
    if not isinstance(payload, dict):
        return None
    try:
        return _RESOLVE_DATA_ADAPTER.validate_python(payload)
    except ValidationError:
        return None


def parse_doc_settings(payload: JSONValue) -> DocSettings:
    if not isinstance(payload, dict):
        return DocSettings()
    try:
        return DocSettings.model_validate(payload)
    except ValidationError:
        return DocSettings()
