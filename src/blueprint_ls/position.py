"""Conversion between source and protocol coordinates.

Source positions are 1-indexed ``(line, column)``; protocol positions are
0-indexed ``(line, character)``. Conversion happens here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lsprotocol.types import Position, Range

COMPLETION_COLUMN_LEEWAY = 2


class ColumnAccuracy(Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SourcePosition:
    line: int
    column: int


@dataclass(frozen=True)
class SourceRange:
    start: SourcePosition
    end: SourcePosition | None = None


@dataclass(frozen=True)
class SourceLocation:
    """Where an error was reported, with how far its column can be trusted."""

    line: int | None = None
    column: int | None = None
    end_line: int | None = None
    end_column: int | None = None
    column_confidence: ColumnAccuracy = ColumnAccuracy.EXACT

    def is_empty(self) -> bool:
        return self.line is None and self.column is None

    def has_exact_column(self) -> bool:
        return self.column_confidence is ColumnAccuracy.EXACT


def to_protocol(position: SourcePosition) -> Position:
    return Position(line=position.line - 1, character=position.column - 1)


def to_source(position: Position) -> SourcePosition:
    return SourcePosition(line=position.line + 1, column=position.character + 1)


def to_protocol_range(
    source_range: SourceRange,
    column_confidence: ColumnAccuracy = ColumnAccuracy.EXACT,
) -> Range:
    """Convert a source range, widening it when its columns are unreliable.

    Approximate columns map to character 0. A missing end, or an end whose
    columns cannot be trusted, becomes the start of the following line.
    """
    start = source_range.start
    exact = column_confidence is ColumnAccuracy.EXACT
    start_character = start.column - 1 if exact else 0
    protocol_start = Position(line=start.line - 1, character=max(start_character, 0))
    end = source_range.end
    if end is None or not exact:
        protocol_end = Position(line=start.line, character=0)
    else:
        protocol_end = to_protocol(end)
    return Range(start=protocol_start, end=protocol_end)


def range_contains(
    source_range: SourceRange | None,
    position: SourcePosition,
    leeway: int = COMPLETION_COLUMN_LEEWAY,
) -> bool:
    """Report whether position falls inside source_range.

    The end column is extended by ``leeway`` so a trigger character typed
    just past the end of a node still counts as inside it.
    """
    if source_range is None:
        return False
    start = source_range.start
    if position.line < start.line:
        return False
    if position.line == start.line and position.column < start.column:
        return False
    end = source_range.end
    if end is None:
        return position.line == start.line
    if position.line > end.line:
        return False
    if position.line == end.line and position.column > end.column + leeway:
        return False
    return True
