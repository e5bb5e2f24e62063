"""Structured errors reported by the blueprint loader and validator.

Four of these shapes carry a source location (load, schema, parse and lex
errors; core errors share the schema shape). ``location()`` normalizes each of
them to a ``SourceLocation`` so diagnostics never have to care which kind
produced it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from blueprint_ls.json_types import JSONValue
from blueprint_ls.position import ColumnAccuracy, SourceLocation


@dataclass(frozen=True)
class SuggestedAction:
    title: str
    description: str = ""


@dataclass
class ErrorContext:
    suggested_actions: list[SuggestedAction] = field(default_factory=list)
    metadata: dict[str, JSONValue] = field(default_factory=dict)


class LoadError(Exception):
    """A (possibly nested) error raised while loading a blueprint."""

    def __init__(
        self,
        message: str,
        *,
        child_errors: Sequence[BaseException] = (),
        line: int | None = None,
        column: int | None = None,
        end_line: int | None = None,
        end_column: int | None = None,
        column_accuracy: ColumnAccuracy | None = None,
        reason_code: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.child_errors = list(child_errors)
        self.line = line
        self.column = column
        self.end_line = end_line
        self.end_column = end_column
        self.column_accuracy = column_accuracy
        self.reason_code = reason_code
        self.context = context

    def location(self) -> SourceLocation:
        # Without an explicit accuracy the reported columns are trusted as is.
        return SourceLocation(
            line=self.line,
            column=self.column,
            end_line=self.end_line,
            end_column=self.end_column,
            column_confidence=self.column_accuracy or ColumnAccuracy.EXACT,
        )


class SchemaError(Exception):
    def __init__(
        self,
        message: str,
        *,
        source_line: int | None = None,
        source_column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source_line = source_line
        self.source_column = source_column

    def location(self) -> SourceLocation:
        return SourceLocation(line=self.source_line, column=self.source_column)


class CoreError(SchemaError):
    """Evaluation error from the core engine; located like a schema error."""


class ParseError(Exception):
    """A substitution parse error."""

    def __init__(
        self,
        message: str,
        *,
        line: int,
        column: int,
        column_accuracy: ColumnAccuracy = ColumnAccuracy.EXACT,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.column_accuracy = column_accuracy

    def location(self) -> SourceLocation:
        return SourceLocation(
            line=self.line,
            column=self.column,
            column_confidence=self.column_accuracy,
        )


class LexError(ParseError):
    """A substitution lexing error; located like a parse error."""


class ParseErrors(Exception):
    def __init__(self, message: str, child_errors: Sequence[BaseException]) -> None:
        super().__init__(message)
        self.message = message
        self.child_errors = list(child_errors)


class LexErrors(ParseErrors):
    pass


class RunError(Exception):
    """An error that is only meaningful while a blueprint is being deployed."""
