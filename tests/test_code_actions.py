from __future__ import annotations

import pytest
from lsprotocol.types import CodeActionKind, Diagnostic, Position, Range

from blueprint_ls.codeactions import (
    REASON_MISSING_VERSION,
    REASON_NOT_ALLOWED_VALUE,
    REASON_UNKNOWN_FIELD,
    REASON_VARIABLE_VALIDATION,
    CodeActionService,
    format_value_for_edit,
    parse_allowed_values,
    ranges_overlap,
)
from blueprint_ls.docmodel import DocumentFormat

YAML_URI = "file:///w/app.blueprint.yaml"
JSONC_URI = "file:///w/app.blueprint.jsonc"


def _range(line: int, start: int, end: int) -> Range:
    return Range(start=Position(line=line, character=start), end=Position(line=line, character=end))


def _diagnostic(code: str, data=None, message: str = "invalid", line: int = 3) -> Diagnostic:
    return Diagnostic(range=_range(line, 4, 8), message=message, code=code, data=data)


def _edits(action, uri: str = YAML_URI):
    return action.edit.changes[uri]


def test_ranges_overlap_excludes_adjacent_ranges() -> None:
    assert ranges_overlap(_range(1, 0, 5), _range(1, 4, 9))
    assert not ranges_overlap(_range(1, 0, 5), _range(1, 5, 9))
    assert not ranges_overlap(_range(2, 0, 5), _range(1, 0, 9))


def test_parse_allowed_values_strips_brackets_and_quotes() -> None:
    assert parse_allowed_values("[\"PAY_PER_REQUEST\", 'PROVISIONED', ]") == [
        "PAY_PER_REQUEST",
        "PROVISIONED",
    ]


@pytest.mark.parametrize(
    ("value", "document_format", "expected"),
    [
        ("plain", DocumentFormat.YAML, "plain"),
        ("a: b", DocumentFormat.YAML, '"a: b"'),
        ("plain", DocumentFormat.JSONC, '"plain"'),
    ],
)
def test_format_value_for_edit(value: str, document_format: DocumentFormat, expected: str) -> None:
    assert format_value_for_edit(value, document_format) == expected


def test_typo_fixes_prefer_first_suggestion() -> None:
    diagnostic = _diagnostic(
        REASON_UNKNOWN_FIELD, {"unknownField": "tpye", "suggestions": ["type", "tags"]}
    )
    first, second = CodeActionService().code_actions(YAML_URI, _range(3, 5, 5), [diagnostic])
    assert first.title == "Replace 'tpye' with 'type'"
    assert first.kind == CodeActionKind.QuickFix
    assert first.is_preferred is True
    assert second.is_preferred is False
    [edit] = _edits(first)
    assert (edit.range, edit.new_text) == (diagnostic.range, "type")
    assert first.diagnostics == [diagnostic]


def test_typo_fixes_quote_jsonc_keys() -> None:
    diagnostic = _diagnostic(REASON_UNKNOWN_FIELD, {"unknownField": "tpye", "suggestions": ["type"]})
    [action] = CodeActionService().code_actions(JSONC_URI, diagnostic.range, [diagnostic])
    assert _edits(action, JSONC_URI)[0].new_text == '"type"'


def test_allowed_value_fixes() -> None:
    diagnostic = _diagnostic(REASON_NOT_ALLOWED_VALUE, {"allowedValuesText": "fast, slow mode"})
    actions = CodeActionService().code_actions(YAML_URI, diagnostic.range, [diagnostic])
    assert [action.title for action in actions] == ["Replace with 'fast'", "Replace with 'slow mode'"]
    assert [_edits(action)[0].new_text for action in actions] == ["fast", '"slow mode"']


@pytest.mark.parametrize(
    ("uri", "line", "text"),
    [
        (YAML_URI, 0, 'version: "2025-11-02"\n'),
        (JSONC_URI, 1, '  "version": "2025-11-02",\n'),
    ],
)
def test_missing_version_fix(uri: str, line: int, text: str) -> None:
    diagnostic = _diagnostic(REASON_MISSING_VERSION)
    [action] = CodeActionService().code_actions(uri, diagnostic.range, [diagnostic])
    [edit] = _edits(action, uri)
    assert edit.range.start == Position(line=line, character=0)
    assert edit.new_text == text


def test_missing_variable_type_fix_inserts_below_the_key() -> None:
    diagnostic = _diagnostic(
        REASON_VARIABLE_VALIDATION, {"variableName": "env"}, message="Type missing for variable"
    )
    [action] = CodeActionService().code_actions(YAML_URI, diagnostic.range, [diagnostic])
    assert action.title == "Add type: string to variable 'env'"
    [edit] = _edits(action)
    assert edit.range.start == Position(line=4, character=0)
    assert edit.new_text == "    type: string\n"


def test_variable_errors_other_than_missing_type_have_no_fix() -> None:
    diagnostic = _diagnostic(
        REASON_VARIABLE_VALIDATION, {"variableName": "env"}, message="default has the wrong type"
    )
    assert CodeActionService().code_actions(YAML_URI, diagnostic.range, [diagnostic]) == []


def test_diagnostics_outside_the_range_or_without_metadata_are_ignored() -> None:
    elsewhere = _diagnostic(REASON_MISSING_VERSION, line=9)
    no_metadata = _diagnostic(REASON_UNKNOWN_FIELD)
    unrelated = _diagnostic("duplicate-key")
    actions = CodeActionService().code_actions(
        YAML_URI, _range(3, 0, 20), [elsewhere, no_metadata, unrelated]
    )
    assert actions == []


def test_unsupported_document_has_no_actions() -> None:
    diagnostic = _diagnostic(REASON_MISSING_VERSION)
    assert CodeActionService().code_actions("file:///w/notes.txt", diagnostic.range, [diagnostic]) == []
