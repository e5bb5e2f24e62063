"""Insert-text formatting for the two blueprint surface syntaxes."""

from __future__ import annotations

from dataclasses import dataclass

from lsprotocol.types import Position, Range

from blueprint_ls.docmodel import CursorContext, DocumentFormat, QuoteType

_YAML_RESERVED = frozenset(
    {"true", "false", "yes", "no", "on", "off", "null", "~"}
)
_YAML_SPECIAL_CHARS = frozenset(":#[]{},&*!|>'\"%@")
_BRACKET_KEY_CHARS = frozenset(".[] -")


def needs_yaml_quoting(value: str) -> bool:
    if value == "":
        return True
    if value.lower() in _YAML_RESERVED:
        return True
    return any(char in _YAML_SPECIAL_CHARS for char in value)


def format_value(
    value: str,
    document_format: DocumentFormat,
    has_leading_quote: bool = False,
    has_leading_space: bool = False,
) -> str:
    if document_format is DocumentFormat.JSONC:
        if has_leading_quote:
            return f'{value}"'
        if has_leading_space:
            return f'"{value}"'
        return f' "{value}"'
    if needs_yaml_quoting(value):
        return f'"{value}"'
    return value


def format_key(name: str, document_format: DocumentFormat) -> str:
    if document_format is DocumentFormat.JSONC:
        return f'"{name}": '
    return f"{name}: "


def format_array_item(value: str, document_format: DocumentFormat) -> str:
    if document_format is DocumentFormat.JSONC:
        return f'"{value}"'
    return f'"{value}"' if needs_yaml_quoting(value) else value


def needs_bracket_notation(key: str) -> bool:
    return any(char in _BRACKET_KEY_CHARS for char in key)


def bracket_quote_for(enclosing: QuoteType) -> str:
    """Quote character for bracket keys that will not close the enclosing string."""
    return "'" if enclosing is QuoteType.DOUBLE else '"'


def format_bracket_notation(
    key: str, enclosing: QuoteType = QuoteType.NONE, quote: str | None = None
) -> str:
    quote = quote or bracket_quote_for(enclosing)
    return f"[{quote}{key}{quote}]"


def format_map_key_for_bracket_insertion(
    key: str, enclosing: QuoteType = QuoteType.NONE, quote: str | None = None
) -> str:
    """Key typed straight after an open ``[``; only the closing half is emitted."""
    quote = quote or bracket_quote_for(enclosing)
    return f"{quote}{key}{quote}]"


def strip_leading_quote(text: str) -> tuple[str, bool]:
    if text[:1] in {'"', "'"}:
        return text[1:], True
    return text, False


def has_leading_whitespace(text_before: str, typed_prefix_len: int) -> bool:
    index = len(text_before) - typed_prefix_len - 1
    return 0 <= index < len(text_before) and text_before[index] in " \t"


@dataclass(frozen=True)
class PrefixInfo:
    typed_prefix: str
    filter_prefix: str
    has_leading_quote: bool
    has_leading_space: bool
    has_trailing_quote: bool

    @property
    def prefix_len(self) -> int:
        return len(self.typed_prefix)

    @property
    def prefix_lower(self) -> str:
        return self.filter_prefix.lower()


def extract_prefix(cursor: CursorContext) -> PrefixInfo:
    typed = cursor.typed_prefix
    filter_prefix, has_quote = strip_leading_quote(typed)
    if cursor.format is not DocumentFormat.JSONC:
        has_quote = False
        filter_prefix = typed.strip("\"'")
    return PrefixInfo(
        typed_prefix=typed,
        filter_prefix=filter_prefix,
        has_leading_quote=has_quote,
        has_leading_space=has_leading_whitespace(cursor.text_before, len(typed)),
        has_trailing_quote=cursor.text_after.startswith('"'),
    )


def matches_prefix(candidate: str, prefix: PrefixInfo | str) -> bool:
    """Case-insensitive ``startswith`` filter."""
    wanted = prefix.prefix_lower if isinstance(prefix, PrefixInfo) else prefix.lower()
    return candidate.lower().startswith(wanted)


def insert_range(position: Position, prefix_len: int = 0) -> Range:
    start = Position(line=position.line, character=max(0, position.character - prefix_len))
    return Range(start=start, end=position)


def bracket_insert_range(position: Position, prefix_len: int = 0) -> Range:
    """Range that also swallows the ``.`` before the typed prefix."""
    return insert_range(position, prefix_len + 1)
