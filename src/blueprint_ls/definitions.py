"""Go-to-definition for references inside a blueprint."""

from __future__ import annotations

import logging
from pathlib import Path

from lsprotocol.types import LocationLink, Position, Range

from blueprint_ls.blueprint import (
    Include,
    NodeKind,
    TreeNode,
    collect_nodes_at,
    reference_target_path,
)
from blueprint_ls.child_resolver import ChildBlueprintResolver
from blueprint_ls.completion.subpath import split_segments
from blueprint_ls.docmodel import DocumentContext
from blueprint_ls.position import COMPLETION_COLUMN_LEEWAY, to_protocol_range, to_source
from blueprint_ls.state import DocumentState

logger = logging.getLogger(__name__)

EXPORT_FIELD_NAMESPACE_PATHS = {
    "resources": "/resources",
    "datasources": "/datasources",
    "variables": "/variables",
    "values": "/values",
    "children": "/includes",
}

NAME_LIST_SUFFIXES = ("/linkSelector/exclude", "/dependsOn")


def export_field_target_path(field_path: str) -> str | None:
    """Declaration path named by an export `field` such as `resources.a.spec.x`."""
    segments, partial = split_segments(field_path)
    if partial:
        segments.append(partial)
    if len(segments) < 2:
        return None
    prefix = EXPORT_FIELD_NAMESPACE_PATHS.get(segments[0])
    if prefix is None:
        return None
    return f"{prefix}/{segments[1]}"


class DefinitionService:
    def __init__(
        self,
        state: DocumentState,
        child_resolver: ChildBlueprintResolver | None = None,
        *,
        column_leeway: int = COMPLETION_COLUMN_LEEWAY,
    ) -> None:
        self.state = state
        self.child_resolver = child_resolver or ChildBlueprintResolver()
        self.column_leeway = column_leeway

    def definitions(self, uri: str, position: Position) -> list[LocationLink]:
        document = self.state.get_context(uri)
        if document is None:
            return []
        return self.definitions_for(document, position)

    def definitions_for(
        self, document: DocumentContext, position: Position
    ) -> list[LocationLink]:
        tree = document.effective_tree
        if tree is None:
            return []
        nodes = collect_nodes_at(tree, to_source(position), self.column_leeway)
        for node in reversed(nodes):
            if node.reference is None:
                continue
            target = tree.find_by_path(reference_target_path(node.reference))
            return self._link(document.uri, node, target)
        return self._plain_string_definitions(document, tree, nodes)

    def _link(
        self, uri: str, origin: TreeNode, target: TreeNode | None
    ) -> list[LocationLink]:
        if target is None or target.range is None or origin.range is None:
            return []
        target_range = to_protocol_range(target.range)
        return [
            LocationLink(
                target_uri=uri,
                target_range=target_range,
                target_selection_range=target_range,
                origin_selection_range=to_protocol_range(origin.range),
            )
        ]

    def _plain_string_definitions(
        self,
        document: DocumentContext,
        tree: TreeNode,
        nodes: list[TreeNode],
    ) -> list[LocationLink]:
        if len(nodes) < 2:
            return []
        leaf = nodes[-1]
        if leaf.kind is not NodeKind.SCALAR or leaf.reference is not None or not leaf.value:
            return []
        for ancestor in reversed(nodes[:-1]):
            match ancestor.kind:
                case NodeKind.INCLUDE if ancestor.find_descendant("path") is leaf:
                    return self._include_link(document, ancestor, leaf)
                case NodeKind.EXPORT if ancestor.find_descendant("field") is leaf:
                    return self._export_field_link(document.uri, tree, leaf)
                case NodeKind.STRING_LIST if ancestor.path.endswith(NAME_LIST_SUFFIXES):
                    target = tree.find_by_path(f"/resources/{leaf.value}")
                    return self._link(document.uri, leaf, target)
        return []

    def _export_field_link(
        self, uri: str, tree: TreeNode, leaf: TreeNode
    ) -> list[LocationLink]:
        target_path = export_field_target_path(leaf.value or "")
        if target_path is None:
            return []
        return self._link(uri, leaf, tree.find_by_path(target_path))

    def _include_link(
        self, document: DocumentContext, include_node: TreeNode, leaf: TreeNode
    ) -> list[LocationLink]:
        blueprint = document.effective_blueprint
        include = None
        if blueprint is not None:
            include = blueprint.includes.get(include_node.label)
        if include is None:
            include = Include(path=leaf.value or "")
        resolved = self.child_resolver.resolve_include_path(document.uri, include)
        if resolved is None or leaf.range is None:
            return []
        target = Path(resolved)
        if not target.is_file():
            logger.debug("include target %s not found", resolved)
            return []
        file_start = Range(
            start=Position(line=0, character=0), end=Position(line=0, character=0)
        )
        return [
            LocationLink(
                target_uri=target.as_uri(),
                target_range=file_start,
                target_selection_range=file_start,
                origin_selection_range=to_protocol_range(leaf.range),
            )
        ]
