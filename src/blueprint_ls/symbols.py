"""Hierarchical document symbols built from the blueprint tree."""

from __future__ import annotations

from lsprotocol.types import DocumentSymbol, SymbolKind

from blueprint_ls.blueprint import NodeKind, TreeNode
from blueprint_ls.docmodel import DocumentContext
from blueprint_ls.position import to_protocol_range
from blueprint_ls.state import DocumentState

_SYMBOL_KINDS: dict[NodeKind, SymbolKind] = {
    NodeKind.SECTION: SymbolKind.Namespace,
    NodeKind.RESOURCE: SymbolKind.Class,
    NodeKind.VARIABLE: SymbolKind.Variable,
    NodeKind.VALUE: SymbolKind.Constant,
    NodeKind.DATA_SOURCE: SymbolKind.Interface,
    NodeKind.INCLUDE: SymbolKind.Module,
    NodeKind.EXPORT: SymbolKind.Property,
    NodeKind.MAPPING: SymbolKind.Object,
    NodeKind.STRING_LIST: SymbolKind.Array,
    NodeKind.SCALAR: SymbolKind.String,
    NodeKind.SUBSTITUTION: SymbolKind.String,
}


def _symbol(node: TreeNode) -> DocumentSymbol | None:
    kind = _SYMBOL_KINDS.get(node.kind)
    if kind is None or node.range is None:
        return None
    symbol_range = to_protocol_range(node.range)
    children = []
    # Substitution internals are not structure.
    if node.kind is not NodeKind.SUBSTITUTION:
        children = document_symbols(node.children)
    return DocumentSymbol(
        name=node.label or node.path or "document",
        kind=kind,
        range=symbol_range,
        selection_range=symbol_range,
        children=children,
    )


def document_symbols(nodes: list[TreeNode]) -> list[DocumentSymbol]:
    return [symbol for node in nodes if (symbol := _symbol(node)) is not None]


class SymbolService:
    def __init__(self, state: DocumentState) -> None:
        self.state = state

    def symbols(self, uri: str) -> list[DocumentSymbol]:
        document = self.state.get_context(uri)
        if document is None:
            return []
        return self.symbols_for(document)

    def symbols_for(self, document: DocumentContext) -> list[DocumentSymbol]:
        tree = document.effective_tree
        if tree is None:
            return []
        return document_symbols(tree.children)
