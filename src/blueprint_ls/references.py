"""Find-all-references for blueprint declarations.

The element under the cursor is resolved to the structural path of its
declaration: from a substitution reference, then from a plain-string name
(``dependsOn``, ``linkSelector.exclude`` or an export ``field``), then from
the declaration itself. Every place in the tree naming that path is reported.
"""

from __future__ import annotations

from collections.abc import Iterator

from lsprotocol.types import Location, Position

from blueprint_ls.blueprint import NodeKind, TreeNode, collect_nodes_at, reference_target_path
from blueprint_ls.deadline import deadline_loop_iter
from blueprint_ls.definitions import NAME_LIST_SUFFIXES, export_field_target_path
from blueprint_ls.docmodel import DocumentContext
from blueprint_ls.position import COMPLETION_COLUMN_LEEWAY, to_protocol_range, to_source
from blueprint_ls.state import DocumentState

_DECLARATION_KINDS = frozenset(
    {
        NodeKind.RESOURCE,
        NodeKind.VARIABLE,
        NodeKind.VALUE,
        NodeKind.DATA_SOURCE,
        NodeKind.INCLUDE,
    }
)


def _with_parents(
    node: TreeNode, parent: TreeNode | None = None
) -> Iterator[tuple[TreeNode, TreeNode | None]]:
    stack = [(node, parent)]
    while stack:
        current, current_parent = stack.pop()
        yield current, current_parent
        stack.extend((child, current) for child in reversed(current.children))


def _plain_string_target(node: TreeNode, parent: TreeNode | None) -> str | None:
    if node.kind is not NodeKind.SCALAR or node.reference is not None or not node.value:
        return None
    if parent is None:
        return None
    if parent.kind is NodeKind.STRING_LIST and parent.path.endswith(NAME_LIST_SUFFIXES):
        return f"/resources/{node.value}"
    if parent.kind is NodeKind.EXPORT and node.label == "field":
        return export_field_target_path(node.value)
    return None


def target_path_at(nodes: list[TreeNode]) -> str | None:
    """Declaration path for the innermost-first nodes collected at a cursor."""
    for node in reversed(nodes):
        if node.reference is not None:
            return reference_target_path(node.reference)
    if len(nodes) >= 2:
        found = _plain_string_target(nodes[-1], nodes[-2])
        if found is not None:
            return found
    for node in reversed(nodes):
        if node.kind in _DECLARATION_KINDS:
            return node.path
    return None


class ReferenceService:
    def __init__(
        self,
        state: DocumentState,
        *,
        column_leeway: int = COMPLETION_COLUMN_LEEWAY,
    ) -> None:
        self.state = state
        self.column_leeway = column_leeway

    def references(
        self, uri: str, position: Position, include_declaration: bool = False
    ) -> list[Location]:
        document = self.state.get_context(uri)
        if document is None:
            return []
        return self.references_for(document, position, include_declaration)

    def references_for(
        self,
        document: DocumentContext,
        position: Position,
        include_declaration: bool = False,
    ) -> list[Location]:
        tree = document.effective_tree
        if tree is None:
            return []
        nodes = collect_nodes_at(tree, to_source(position), self.column_leeway)
        target_path = target_path_at(nodes)
        if target_path is None:
            return []
        found: list[TreeNode] = []
        if include_declaration:
            declaration = tree.find_by_path(target_path)
            if declaration is not None:
                found.append(declaration)
        for node, parent in deadline_loop_iter(_with_parents(tree)):
            if node.reference is not None:
                if reference_target_path(node.reference) == target_path:
                    found.append(node)
            elif _plain_string_target(node, parent) == target_path:
                found.append(node)
        return [
            Location(uri=document.uri, range=to_protocol_range(node.range))
            for node in found
            if node.range is not None
        ]
