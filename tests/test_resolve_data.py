from __future__ import annotations

from blueprint_ls.schema import (
    DocSettings,
    FunctionResolveData,
    InertResolveData,
    ResourceTypeResolveData,
    VariableTypeResolveData,
    inert,
    parse_doc_settings,
    parse_resolve_data,
    resolve_data_payload,
)


def test_resolve_data_payload_uses_wire_names() -> None:
    payload = resolve_data_payload(ResourceTypeResolveData(resource_type="aws/dynamodb/table"))
    assert payload == {"completionType": "resourceType", "resourceType": "aws/dynamodb/table"}


def test_parse_resolve_data_dispatches_on_completion_type() -> None:
    assert parse_resolve_data(
        {"completionType": "function", "functionName": "join"}
    ) == FunctionResolveData(function_name="join")
    assert parse_resolve_data(
        {"completionType": "variableType", "variableType": "aws/region"}
    ) == VariableTypeResolveData(variable_type="aws/region")
    assert parse_resolve_data(inert("annotationKey")) == InertResolveData(
        completion_type="annotationKey"
    )


def test_parse_resolve_data_rejects_unknown_payloads() -> None:
    assert parse_resolve_data(None) is None
    assert parse_resolve_data("resourceType") is None
    assert parse_resolve_data({"completionType": "mystery"}) is None
    assert parse_resolve_data({"completionType": "resourceType"}) is None


def test_parse_doc_settings_reads_client_payload() -> None:
    settings = parse_doc_settings(
        {"maxNumberOfProblems": 5, "showAnyTypeWarnings": True, "trace": {"server": "verbose"}}
    )
    assert settings.max_number_of_problems == 5
    assert settings.show_any_type_warnings is True
    assert settings.trace.server == "verbose"


def test_parse_doc_settings_falls_back_to_defaults() -> None:
    assert parse_doc_settings({"maxNumberOfProblems": 0}) == DocSettings()
    assert parse_doc_settings(["not", "a", "mapping"]) == DocSettings()
