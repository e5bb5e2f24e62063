from __future__ import annotations

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    MarkupContent,
    MarkupKind,
    Position,
    Range,
    TextEdit,
)

from blueprint_ls.json_types import JSONObject

RESOURCE_TYPE_NOT_FOUND = (
    "Resource type '{}' not found - install the provider to enable completions"
)
NO_SPEC_SCHEMA = "No spec schema available for resource type '{}'"


def markdown(text: str | None) -> MarkupContent | None:
    if not text:
        return None
    return MarkupContent(kind=MarkupKind.Markdown, value=text)


def make_item(
    label: str,
    *,
    kind: CompletionItemKind,
    new_text: str,
    edit_range: Range,
    detail: str | None = None,
    filter_text: str | None = None,
    sort_text: str | None = None,
    documentation: str | None = None,
    data: JSONObject | None = None,
) -> CompletionItem:
    return CompletionItem(
        label=label,
        kind=kind,
        detail=detail,
        text_edit=TextEdit(range=edit_range, new_text=new_text),
        filter_text=filter_text if filter_text is not None else label,
        sort_text=sort_text,
        documentation=markdown(documentation),
        data=data,
    )


def hint_item(message: str, position: Position) -> CompletionItem:
    """Informational entry that inserts nothing."""
    return CompletionItem(
        label=message,
        kind=CompletionItemKind.Text,
        text_edit=TextEdit(range=Range(start=position, end=position), new_text=""),
    )
