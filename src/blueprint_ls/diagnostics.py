"""Turn structured validation errors into editor diagnostics.

Errors arrive as a tree: load errors nest other errors, and parse/lex errors
come in batches. Every leaf becomes one diagnostic. A leaf without a
location borrows its nearest ancestor's, so nothing is dropped for lack of
position information.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from lsprotocol.types import (
    Diagnostic,
    DiagnosticRelatedInformation,
    DiagnosticSeverity,
    Location,
    Position,
    Range,
)

from blueprint_ls.errors import (
    CoreError,
    LexError,
    LexErrors,
    LoadError,
    ParseError,
    ParseErrors,
    RunError,
    SchemaError,
)
from blueprint_ls.json_types import JSONValue
from blueprint_ls.position import (
    ColumnAccuracy,
    SourceLocation,
    SourcePosition,
    SourceRange,
    to_protocol_range,
)

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE_VALIDATOR = "blueprint-validator"
DIAGNOSTIC_SOURCE_SYNTAX = "blueprint-syntax"
DIAGNOSTIC_CODE_DUPLICATE_KEY = "duplicate-key"

MAX_AVAILABLE_FIELDS = 8

_DEFAULT_RANGE = Range(start=Position(line=0, character=0), end=Position(line=1, character=0))


def default_range() -> Range:
    return Range(start=_DEFAULT_RANGE.start, end=_DEFAULT_RANGE.end)


def range_from_location(
    location: SourceLocation | None,
    parent: SourceLocation | None = None,
) -> Range:
    """Protocol range for an error location.

    The end position is used only when the column is exact and both end
    coordinates are known; otherwise the range runs to the start of the next
    line.
    """
    if location is None or location.is_empty():
        if parent is None or parent.is_empty():
            return default_range()
        location = parent
    line = location.line if location.line is not None else 1
    column = location.column if location.column is not None else 1
    confidence = location.column_confidence
    if location.column is None and confidence is ColumnAccuracy.EXACT:
        confidence = ColumnAccuracy.UNKNOWN
    end = None
    if location.end_line is not None and location.end_column is not None:
        end = SourcePosition(line=location.end_line, column=location.end_column)
    return to_protocol_range(
        SourceRange(start=SourcePosition(line=line, column=column), end=end),
        confidence,
    )


def format_load_error_message(error: LoadError) -> str:
    message = error.message
    context = error.context
    if context is None:
        return message
    metadata = context.metadata
    suggestions = metadata.get("suggestions")
    if isinstance(suggestions, list) and suggestions:
        message += "\n\nDid you mean: " + ", ".join(str(item) for item in suggestions) + "?"
    available = metadata.get("availableFields")
    if isinstance(available, list) and available:
        message += "\n\nAvailable fields: " + format_available_fields(
            [str(item) for item in available]
        )
    if context.suggested_actions:
        message += "\n\nSuggested Actions:\n"
        for index, action in enumerate(context.suggested_actions, start=1):
            message += f"  {index}. {action.title}"
            if action.description:
                message += f": {action.description}"
            message += "\n"
    return message


def format_available_fields(names: list[str]) -> str:
    shown = ", ".join(names[:MAX_AVAILABLE_FIELDS])
    hidden = len(names) - MAX_AVAILABLE_FIELDS
    if hidden > 0:
        shown += f", ... ({hidden} more)"
    return shown


def _error_diagnostic(
    message: str,
    range_: Range,
    *,
    code: str | None = None,
    data: JSONValue = None,
) -> Diagnostic:
    return Diagnostic(
        range=range_,
        message=message,
        severity=DiagnosticSeverity.Error,
        source=DIAGNOSTIC_SOURCE_VALIDATOR,
        code=code,
        data=data,
    )


def _error_data(error: LoadError) -> JSONValue:
    # Quick fixes read the error metadata back from the diagnostic.
    if error.context is None or not error.context.metadata:
        return None
    return dict(error.context.metadata)


def _message_of(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error)


def _collect(
    error: BaseException,
    parent: SourceLocation | None,
    out: list[Diagnostic],
) -> None:
    match error:
        case RunError():
            return
        case LoadError() if error.child_errors:
            location = error.location()
            inherited = parent if location.is_empty() else location
            for child in error.child_errors:
                _collect(child, inherited, out)
        case LoadError():
            out.append(
                _error_diagnostic(
                    format_load_error_message(error),
                    range_from_location(error.location(), parent),
                    code=error.reason_code,
                    data=_error_data(error),
                )
            )
        case ParseErrors() | LexErrors():
            for child in error.child_errors:
                _collect(child, parent, out)
        case ParseError() | LexError() | SchemaError() | CoreError():
            out.append(
                _error_diagnostic(
                    _message_of(error),
                    range_from_location(error.location(), parent),
                )
            )
        case _:
            out.append(_error_diagnostic(_message_of(error), range_from_location(None, parent)))


def blueprint_error_to_diagnostics(error: BaseException | None) -> list[Diagnostic]:
    """Flatten an error tree into deduplicated diagnostics. Never raises."""
    if error is None:
        return []
    diagnostics: list[Diagnostic] = []
    try:
        _collect(error, None, diagnostics)
    except RecursionError:
        logger.warning("error tree too deep, reporting a single diagnostic")
        diagnostics = [_error_diagnostic(_message_of(error), default_range())]
    return deduplicate(diagnostics)


def diagnostic_key(diagnostic: Diagnostic) -> str:
    start = diagnostic.range.start
    end = diagnostic.range.end
    severity = int(diagnostic.severity) if diagnostic.severity is not None else 0
    return (
        f"{start.line}:{start.character}-{end.line}:{end.character}"
        f"|{severity}|{diagnostic.message}"
    )


def deduplicate(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    seen: set[str] = set()
    unique: list[Diagnostic] = []
    for diagnostic in diagnostics:
        key = diagnostic_key(diagnostic)
        if key in seen:
            continue
        seen.add(key)
        unique.append(diagnostic)
    return unique


# Duplicate keys are reported by the syntax layer rather than the validator.


@dataclass(frozen=True)
class DuplicateKey:
    key: str
    range: SourceRange
    key_range: SourceRange | None = None
    first_occurrence: SourceRange | None = None


def duplicate_key_diagnostics(uri: str, duplicates: Iterable[DuplicateKey]) -> list[Diagnostic]:
    diagnostics = []
    for duplicate in duplicates:
        related = None
        if duplicate.first_occurrence is not None:
            related = [
                DiagnosticRelatedInformation(
                    location=Location(uri=uri, range=to_protocol_range(duplicate.first_occurrence)),
                    message=f"First occurrence of '{duplicate.key}'",
                )
            ]
        diagnostics.append(
            Diagnostic(
                range=to_protocol_range(duplicate.key_range or duplicate.range),
                message=f"Duplicate key '{duplicate.key}'",
                severity=DiagnosticSeverity.Error,
                source=DIAGNOSTIC_SOURCE_SYNTAX,
                code=DIAGNOSTIC_CODE_DUPLICATE_KEY,
                related_information=related,
            )
        )
    return diagnostics


# Non-fatal diagnostics reported by the validator for a blueprint that loaded.


class DiagnosticLevel(Enum):
    ERROR = 1
    WARNING = 2
    INFO = 3


_SEVERITIES = {
    DiagnosticLevel.ERROR: DiagnosticSeverity.Error,
    DiagnosticLevel.WARNING: DiagnosticSeverity.Warning,
    DiagnosticLevel.INFO: DiagnosticSeverity.Information,
}

ANY_TYPE_WARNING_CODE = "any_type_warning"


@dataclass(frozen=True)
class BlueprintDiagnostic:
    level: DiagnosticLevel
    message: str
    range: SourceRange | None = None
    column_accuracy: ColumnAccuracy = ColumnAccuracy.EXACT
    code: str | None = None


def blueprint_diagnostics_to_lsp(
    diagnostics: Iterable[BlueprintDiagnostic],
    *,
    show_any_type_warnings: bool = False,
) -> list[Diagnostic]:
    converted = []
    for diagnostic in diagnostics:
        if diagnostic.code == ANY_TYPE_WARNING_CODE and not show_any_type_warnings:
            continue
        if diagnostic.range is None:
            range_ = default_range()
        else:
            range_ = to_protocol_range(diagnostic.range, diagnostic.column_accuracy)
        converted.append(
            Diagnostic(
                range=range_,
                message=diagnostic.message,
                severity=_SEVERITIES[diagnostic.level],
                source=DIAGNOSTIC_SOURCE_VALIDATOR,
                code=diagnostic.code,
            )
        )
    return converted
