"""Quick fixes for validator diagnostics.

Actions are computed from the diagnostics the client sends back with the
request. Each one carries the validator's reason code in ``code`` and the
error metadata in ``data``, so no per-document diagnostic state is kept.
"""

from __future__ import annotations

import logging

from lsprotocol.types import (
    CodeAction,
    CodeActionKind,
    Diagnostic,
    Position,
    Range,
    TextEdit,
    WorkspaceEdit,
)

from blueprint_ls.completion.fields import SUPPORTED_VERSIONS
from blueprint_ls.docmodel import DocumentFormat, format_from_uri
from blueprint_ls.exceptions import UnsupportedFormatError
from blueprint_ls.json_types import JSONValue

logger = logging.getLogger(__name__)

REASON_UNKNOWN_FIELD = "resource_def_unknown_field"
REASON_NOT_ALLOWED_VALUE = "resource_def_not_allowed_value"
REASON_MISSING_VERSION = "missing_version"
REASON_VARIABLE_VALIDATION = "variable_validation_errors"

_YAML_SPECIAL = set(" \t:{}[],'\"")


def ranges_overlap(a: Range, b: Range) -> bool:
    """Adjacent ranges do not overlap."""
    if (a.end.line, a.end.character) <= (b.start.line, b.start.character):
        return False
    if (b.end.line, b.end.character) <= (a.start.line, a.start.character):
        return False
    return True


def parse_allowed_values(text: str) -> list[str]:
    values = []
    for part in text.strip("[]{}\"'").split(","):
        value = part.strip().strip("\"'")
        if value:
            values.append(value)
    return values


def format_value_for_edit(value: str, document_format: DocumentFormat) -> str:
    if document_format is DocumentFormat.JSONC or _YAML_SPECIAL.intersection(value):
        return f'"{value}"'
    return value


def _metadata(diagnostic: Diagnostic) -> dict[str, JSONValue]:
    return diagnostic.data if isinstance(diagnostic.data, dict) else {}


def _insert_at(line: int) -> Range:
    position = Position(line=line, character=0)
    return Range(start=position, end=position)


class CodeActionService:
    def __init__(self, *, version: str = SUPPORTED_VERSIONS[0]) -> None:
        self.version = version

    def code_actions(
        self, uri: str, requested: Range, diagnostics: list[Diagnostic]
    ) -> list[CodeAction]:
        try:
            document_format = format_from_uri(uri)
        except UnsupportedFormatError:
            logger.debug("no code actions for %s", uri)
            return []
        actions: list[CodeAction] = []
        for diagnostic in diagnostics:
            if ranges_overlap(diagnostic.range, requested):
                actions.extend(self._for_diagnostic(uri, document_format, diagnostic))
        return actions

    def _for_diagnostic(
        self, uri: str, document_format: DocumentFormat, diagnostic: Diagnostic
    ) -> list[CodeAction]:
        code = diagnostic.code
        if code == REASON_UNKNOWN_FIELD:
            return self._typo_fixes(uri, document_format, diagnostic)
        if code == REASON_NOT_ALLOWED_VALUE:
            return self._allowed_value_fixes(uri, document_format, diagnostic)
        if code == REASON_MISSING_VERSION:
            return [self._missing_version_fix(uri, document_format, diagnostic)]
        if code == REASON_VARIABLE_VALIDATION:
            action = self._missing_variable_type_fix(uri, document_format, diagnostic)
            return [] if action is None else [action]
        return []

    def _quick_fix(
        self,
        uri: str,
        title: str,
        edit: TextEdit,
        diagnostic: Diagnostic,
        preferred: bool,
    ) -> CodeAction:
        return CodeAction(
            title=title,
            kind=CodeActionKind.QuickFix,
            is_preferred=preferred,
            edit=WorkspaceEdit(changes={uri: [edit]}),
            diagnostics=[diagnostic],
        )

    def _typo_fixes(
        self, uri: str, document_format: DocumentFormat, diagnostic: Diagnostic
    ) -> list[CodeAction]:
        metadata = _metadata(diagnostic)
        unknown = metadata.get("unknownField")
        suggestions = metadata.get("suggestions")
        if not isinstance(unknown, str) or not unknown or not isinstance(suggestions, list):
            return []
        actions = []
        for index, suggestion in enumerate(s for s in suggestions if isinstance(s, str)):
            # JSONC keys are quoted.
            new_text = f'"{suggestion}"' if document_format is DocumentFormat.JSONC else suggestion
            actions.append(
                self._quick_fix(
                    uri,
                    f"Replace '{unknown}' with '{suggestion}'",
                    TextEdit(range=diagnostic.range, new_text=new_text),
                    diagnostic,
                    preferred=index == 0,
                )
            )
        return actions

    def _allowed_value_fixes(
        self, uri: str, document_format: DocumentFormat, diagnostic: Diagnostic
    ) -> list[CodeAction]:
        text = _metadata(diagnostic).get("allowedValuesText")
        if not isinstance(text, str) or not text:
            return []
        return [
            self._quick_fix(
                uri,
                f"Replace with '{value}'",
                TextEdit(
                    range=diagnostic.range,
                    new_text=format_value_for_edit(value, document_format),
                ),
                diagnostic,
                preferred=index == 0,
            )
            for index, value in enumerate(parse_allowed_values(text))
        ]

    def _missing_version_fix(
        self, uri: str, document_format: DocumentFormat, diagnostic: Diagnostic
    ) -> CodeAction:
        if document_format is DocumentFormat.JSONC:
            # First line inside the opening brace.
            edit = TextEdit(range=_insert_at(1), new_text=f'  "version": "{self.version}",\n')
        else:
            edit = TextEdit(range=_insert_at(0), new_text=f'version: "{self.version}"\n')
        return self._quick_fix(uri, "Add version field", edit, diagnostic, preferred=True)

    def _missing_variable_type_fix(
        self, uri: str, document_format: DocumentFormat, diagnostic: Diagnostic
    ) -> CodeAction | None:
        name = _metadata(diagnostic).get("variableName")
        if not isinstance(name, str) or not name or "missing" not in diagnostic.message.lower():
            return None
        if document_format is DocumentFormat.JSONC:
            new_text = '    "type": "string",\n'
        else:
            new_text = "    type: string\n"
        # The diagnostic points at the variable key; the type goes on the next line.
        edit = TextEdit(range=_insert_at(diagnostic.range.start.line + 1), new_text=new_text)
        return self._quick_fix(
            uri, f"Add type: string to variable '{name}'", edit, diagnostic, preferred=True
        )
