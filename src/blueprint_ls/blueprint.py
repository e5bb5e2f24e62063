"""Document model for parsed blueprints.

The parser that produces these objects lives outside this package; the
language services only read them. ``TreeNode`` is the position-aware view of
the same document used to map a cursor onto structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Union

from blueprint_ls.json_types import JSONValue
from blueprint_ls.position import (
    COMPLETION_COLUMN_LEEWAY,
    SourcePosition,
    SourceRange,
    range_contains,
)


@dataclass
class LinkSelector:
    by_label: dict[str, str] = field(default_factory=dict)
    exclude: list[str] = field(default_factory=list)


@dataclass
class Metadata:
    display_name: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, JSONValue] = field(default_factory=dict)
    custom: JSONValue = None


@dataclass
class Resource:
    type: str
    description: str | None = None
    metadata: Metadata | None = None
    link_selector: LinkSelector | None = None
    depends_on: list[str] = field(default_factory=list)
    condition: JSONValue = None
    each: str | None = None
    spec: JSONValue = None


@dataclass
class Variable:
    type: str
    description: str | None = None
    default: JSONValue = None
    allowed_values: list[JSONValue] = field(default_factory=list)
    secret: bool = False


@dataclass
class Value:
    type: str
    value: JSONValue = None
    description: str | None = None
    secret: bool = False


@dataclass
class DataSourceFilter:
    field: str
    operator: str
    search: JSONValue = None


@dataclass
class DataSourceFieldExport:
    type: str
    alias_for: str | None = None
    description: str | None = None


@dataclass
class DataSource:
    type: str
    description: str | None = None
    metadata: Metadata | None = None
    filters: list[DataSourceFilter] = field(default_factory=list)
    exports: dict[str, DataSourceFieldExport] = field(default_factory=dict)


@dataclass
class Include:
    path: str
    description: str | None = None
    variables: dict[str, JSONValue] = field(default_factory=dict)
    metadata: dict[str, JSONValue] = field(default_factory=dict)


@dataclass
class Export:
    type: str
    field: str
    description: str | None = None


@dataclass
class Blueprint:
    version: str | None = None
    transform: list[str] = field(default_factory=list)
    variables: dict[str, Variable] = field(default_factory=dict)
    values: dict[str, Value] = field(default_factory=dict)
    resources: dict[str, Resource] = field(default_factory=dict)
    datasources: dict[str, DataSource] = field(default_factory=dict)
    includes: dict[str, Include] = field(default_factory=dict)
    exports: dict[str, Export] = field(default_factory=dict)
    metadata: JSONValue = None

    def names_by_namespace(self) -> dict[str, set[str]]:
        return {
            "resources": set(self.resources),
            "variables": set(self.variables),
            "datasources": set(self.datasources),
            "values": set(self.values),
            "children": set(self.includes),
        }


# Reference kinds that can appear inside a substitution. Consumers dispatch on
# these with a single ``match`` rather than probing node attributes.


@dataclass(frozen=True)
class ResourceRef:
    name: str
    path: tuple[str, ...] = ()


@dataclass(frozen=True)
class DataSourceRef:
    name: str
    field: str | None = None


@dataclass(frozen=True)
class VariableRef:
    name: str


@dataclass(frozen=True)
class ValueRef:
    name: str
    path: tuple[str, ...] = ()


@dataclass(frozen=True)
class ChildRef:
    name: str
    path: tuple[str, ...] = ()


Reference = Union[ResourceRef, DataSourceRef, VariableRef, ValueRef, ChildRef]


def reference_target_path(reference: Reference) -> str:
    """Structural path of the declaration a reference points at."""
    match reference:
        case ResourceRef(name=name):
            return f"/resources/{name}"
        case DataSourceRef(name=name):
            return f"/datasources/{name}"
        case VariableRef(name=name):
            return f"/variables/{name}"
        case ValueRef(name=name):
            return f"/values/{name}"
        case ChildRef(name=name):
            return f"/includes/{name}"


class NodeKind(Enum):
    BLUEPRINT = "blueprint"
    SECTION = "section"
    RESOURCE = "resource"
    VARIABLE = "variable"
    VALUE = "value"
    DATA_SOURCE = "dataSource"
    INCLUDE = "include"
    EXPORT = "export"
    MAPPING = "mapping"
    STRING_LIST = "stringList"
    SUBSTITUTION = "substitution"
    REFERENCE = "reference"
    SCALAR = "scalar"


@dataclass
class TreeNode:
    label: str
    path: str
    range: SourceRange | None
    kind: NodeKind = NodeKind.SCALAR
    value: str | None = None
    reference: Reference | None = None
    children: list["TreeNode"] = field(default_factory=list)

    def iter_nodes(self) -> Iterator["TreeNode"]:
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_by_path(self, path: str) -> "TreeNode | None":
        for node in self.iter_nodes():
            if node.path == path:
                return node
        return None

    def find_descendant(self, label: str) -> "TreeNode | None":
        for node in self.iter_nodes():
            if node is not self and node.label == label:
                return node
        return None


def collect_nodes_at(
    tree: TreeNode | None,
    position: SourcePosition,
    leeway: int = COMPLETION_COLUMN_LEEWAY,
) -> list[TreeNode]:
    """Return every node covering position, outermost first, innermost last."""
    collected: list[TreeNode] = []
    node = tree
    while node is not None:
        if node.kind is not NodeKind.BLUEPRINT and not range_contains(
            node.range, position, leeway
        ):
            break
        collected.append(node)
        node = next(
            (
                child
                for child in reversed(node.children)
                if range_contains(child.range, position, leeway)
            ),
            None,
        )
    return collected
