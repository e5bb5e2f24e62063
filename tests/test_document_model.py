from __future__ import annotations

import pytest

from blueprint_ls.blueprint import Blueprint, NodeKind, TreeNode
from blueprint_ls.docmodel import (
    DocumentFormat,
    QuoteType,
    format_from_path,
    format_from_uri,
    infer_jsonc_path,
    infer_yaml_path,
    uri_to_path,
)
from blueprint_ls.exceptions import UnsupportedFormatError
from blueprint_ls.position import SourcePosition

YAML_DOC = (
    "version: 2025-11-02\n"
    "resources:\n"
    "  ordersTable:\n"
    "    type: aws/dynamodb/table\n"
    "    spec:\n"
    "      billingMode: \n"
    "      tableName: orders\n"
    "  handler:\n"
    "    dependsOn:\n"
    "      - \n"
)


def test_format_detection_from_extension() -> None:
    assert format_from_path("app.blueprint.yaml") is DocumentFormat.YAML
    assert format_from_path("app.YML") is DocumentFormat.YAML
    assert format_from_uri("file:///work/app.jsonc") is DocumentFormat.JSONC
    with pytest.raises(UnsupportedFormatError):
        format_from_path("app.toml")


def test_uri_to_path_decodes_file_uris() -> None:
    assert str(uri_to_path("file:///work/my%20app/app.yaml")) == "/work/my app/app.yaml"


def test_yaml_path_for_value_includes_own_key() -> None:
    lines = YAML_DOC.split("\n")
    assert infer_yaml_path(lines, 5, "      billingMode: ") == [
        "resources",
        "ordersTable",
        "spec",
        "billingMode",
    ]


def test_yaml_path_for_key_excludes_partial_key() -> None:
    lines = YAML_DOC.split("\n")
    assert infer_yaml_path(lines, 5, "      bill") == ["resources", "ordersTable", "spec"]
    assert infer_yaml_path(lines, 1, "") == []


def test_yaml_path_for_list_item() -> None:
    lines = YAML_DOC.split("\n")
    assert infer_yaml_path(lines, 9, "      - ") == ["resources", "handler", "dependsOn"]


def test_jsonc_path_tracks_open_keys() -> None:
    text = '{\n  // orders\n  "resources": {\n    "ordersTable": {\n      "type": "aws'
    assert infer_jsonc_path(text) == (["resources", "ordersTable", "type"], False)


def test_jsonc_path_for_key_and_array() -> None:
    assert infer_jsonc_path('{"resources": {"t": {"ty') == (["resources", "t"], False)
    assert infer_jsonc_path('{"resources": {"t": {"dependsOn": ["a", ') == (
        ["resources", "t", "dependsOn"],
        True,
    )
    assert infer_jsonc_path('{"variables": {}, "res') == ([], False)


def test_cursor_context_reads_current_line(make_document) -> None:
    document = make_document(YAML_DOC)
    cursor = document.cursor_context(SourcePosition(line=6, column=20))
    assert cursor.text_before == "      billingMode: "
    assert cursor.structural_path == ["resources", "ordersTable", "spec", "billingMode"]
    assert not cursor.is_key_position()
    assert cursor.typed_prefix == ""


def test_cursor_context_list_item_prefix(make_document) -> None:
    document = make_document(YAML_DOC.replace("      - \n", "      - ord\n"))
    cursor = document.cursor_context(SourcePosition(line=10, column=12))
    assert cursor.in_list_item
    assert cursor.typed_prefix == "ord"


def test_enclosing_quote_detection(make_document) -> None:
    document = make_document('name: "${resources.x[\n')
    cursor = document.cursor_context(SourcePosition(line=1, column=22))
    assert cursor.enclosing_quote is QuoteType.DOUBLE


def test_updated_context_keeps_last_valid_parse(make_document) -> None:
    tree = TreeNode(label="", path="", range=None, kind=NodeKind.BLUEPRINT)
    blueprint = Blueprint(version="2025-11-02")
    document = make_document("version: 2025-11-02\n", blueprint=blueprint, tree=tree)
    broken = document.updated("version: [\n", None, None)
    assert broken.blueprint is None
    assert broken.effective_blueprint is blueprint
    assert broken.effective_tree is tree
    assert broken.version == document.version + 1
