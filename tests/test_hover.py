from __future__ import annotations

import pytest
from lsprotocol.types import Position, Range

from blueprint_ls.blueprint import (
    Blueprint,
    ChildRef,
    DataSource,
    DataSourceFieldExport,
    DataSourceRef,
    Include,
    NodeKind,
    Resource,
    ResourceRef,
    TreeNode,
    Value,
    ValueRef,
    Variable,
    VariableRef,
)
from blueprint_ls.hover import HoverService
from blueprint_ls.position import SourcePosition, SourceRange
from blueprint_ls.registries import (
    Registries,
    SchemaType,
    SpecDefinition,
    SpecSchema,
    TypeDescription,
)
from blueprint_ls.state import DocumentState
from tests.fakes import FakeDataSourceRegistry, FakeResourceRegistry

TABLE_SCHEMA = SpecSchema(
    type=SchemaType.OBJECT,
    attributes={
        "tableName": SpecSchema(type=SchemaType.STRING, description="Name of the table."),
    },
)

BLUEPRINT = Blueprint(
    variables={"env": Variable(type="string", description="Deployment environment.")},
    values={"prefix": Value(type="string", description="Name prefix.")},
    includes={"core": Include(path="./core.yaml", description="Shared core.")},
    datasources={
        "network": DataSource(
            type="aws/vpc",
            description="The shared VPC.",
            exports={"vpcId": DataSourceFieldExport(type="string", alias_for="id")},
        )
    },
    resources={
        "ordersTable": Resource(type="aws/dynamodb/table", description="Stores orders."),
    },
)


def _r(line: int, start: int, end: int) -> SourceRange:
    return SourceRange(start=SourcePosition(line, start), end=SourcePosition(line, end))


def _reference(line: int, reference) -> TreeNode:
    return TreeNode(
        label="ref",
        path=f"/values/prefix/value/{line}",
        range=_r(line, 1, 40),
        kind=NodeKind.REFERENCE,
        reference=reference,
    )


def _tree(*children: TreeNode) -> TreeNode:
    return TreeNode(label="", path="", range=None, kind=NodeKind.BLUEPRINT, children=list(children))


def _resource_tree() -> TreeNode:
    return _tree(
        TreeNode(
            label="resources",
            path="/resources",
            range=_r(1, 1, 40),
            kind=NodeKind.SECTION,
        ),
        TreeNode(
            label="ordersTable",
            path="/resources/ordersTable",
            range=_r(2, 1, 40),
            kind=NodeKind.RESOURCE,
            children=[
                TreeNode(
                    label="type",
                    path="/resources/ordersTable/type",
                    range=_r(2, 5, 30),
                    value="aws/dynamodb/table",
                ),
                TreeNode(
                    label="dependsOn",
                    path="/resources/ordersTable/dependsOn",
                    range=_r(2, 31, 40),
                    kind=NodeKind.STRING_LIST,
                ),
            ],
        ),
        TreeNode(
            label="network",
            path="/datasources/network",
            range=_r(3, 1, 40),
            kind=NodeKind.DATA_SOURCE,
            children=[
                TreeNode(
                    label="type",
                    path="/datasources/network/type",
                    range=_r(3, 5, 20),
                    value="aws/vpc",
                )
            ],
        ),
    )


def _service(registries: Registries | None = None) -> HoverService:
    return HoverService(DocumentState(), registries)


def _hover_value(service: HoverService, make_document, tree: TreeNode, line: int, character: int):
    document = make_document("", blueprint=BLUEPRINT, tree=tree)
    result = service.hover_for(document, Position(line=line - 1, character=character - 1))
    return None if result is None else result.contents.value


@pytest.mark.parametrize(
    ("reference", "expected"),
    [
        (VariableRef(name="env"), "```variables.env```\n\n**type:** `string`\n\nDeployment environment."),
        (ValueRef(name="prefix"), "```values.prefix```\n\n**type:** `string`\n\nName prefix."),
        (ChildRef(name="core"), "```includes.core```\n\n**path:** `./core.yaml`\n\nShared core."),
        (DataSourceRef(name="network"), "```datasources.network```\n\n**type:** `aws/vpc`\n\nThe shared VPC."),
        (
            ResourceRef(name="ordersTable"),
            "```resources.ordersTable```\n\n**type:** `aws/dynamodb/table`\n\nStores orders.",
        ),
    ],
)
def test_reference_hover(make_document, reference, expected: str) -> None:
    value = _hover_value(_service(), make_document, _tree(_reference(1, reference)), 1, 5)
    assert value == expected


def test_unknown_reference_has_no_hover(make_document) -> None:
    tree = _tree(_reference(1, VariableRef(name="missing")))
    assert _hover_value(_service(), make_document, tree, 1, 5) is None


def test_data_source_field_hover_includes_export_and_summary(make_document) -> None:
    tree = _tree(_reference(1, DataSourceRef(name="network", field="vpcId")))
    value = _hover_value(_service(), make_document, tree, 1, 5)
    assert value.startswith("```datasources.network.vpcId```\n\n**field type:** `string`")
    assert "**alias for:** `id`" in value
    assert value.endswith("### Data source information\n\n```datasources.network```\n\n**type:** `aws/vpc`\n\nThe shared VPC.")


def test_spec_field_hover_uses_registry_schema(make_document) -> None:
    registries = Registries(
        resources=FakeResourceRegistry(
            specs={"aws/dynamodb/table": SpecDefinition(schema=TABLE_SCHEMA)}
        )
    )
    tree = _tree(_reference(1, ResourceRef(name="ordersTable", path=("spec", "tableName"))))
    value = _hover_value(_service(registries), make_document, tree, 1, 5)
    assert value.startswith(
        "```resources.ordersTable.spec.tableName```\n\n**type:** `string`\n\nName of the table."
    )
    assert "### Resource information" in value


def test_spec_field_hover_falls_back_when_type_is_unregistered(make_document) -> None:
    registries = Registries(resources=FakeResourceRegistry())
    tree = _tree(_reference(1, ResourceRef(name="ordersTable", path=("spec", "tableName"))))
    value = _hover_value(_service(registries), make_document, tree, 1, 5)
    assert value.startswith("```resources.ordersTable```")


class _BrokenResourceRegistry(FakeResourceRegistry):
    def has_resource_type(self, resource_type: str) -> bool:
        raise ConnectionError("plugin process went away")

    def get_type_description(self, resource_type: str) -> TypeDescription:
        raise ConnectionError("plugin process went away")


def test_registry_errors_degrade_to_blueprint_content(make_document) -> None:
    service = _service(Registries(resources=_BrokenResourceRegistry()))
    tree = _tree(_reference(1, ResourceRef(name="ordersTable", path=("spec", "tableName"))))
    assert _hover_value(service, make_document, tree, 1, 5).startswith("```resources.ordersTable```")
    type_value = _hover_value(service, make_document, _resource_tree(), 2, 8)
    assert type_value.startswith("The resource type identifier")


def test_resource_type_hover_uses_type_description(make_document) -> None:
    registries = Registries(
        resources=FakeResourceRegistry(
            descriptions={
                "aws/dynamodb/table": TypeDescription(markdown_description="**DynamoDB** table")
            }
        ),
        data_sources=FakeDataSourceRegistry(),
    )
    service = _service(registries)
    assert _hover_value(service, make_document, _resource_tree(), 2, 8) == "**DynamoDB** table"
    assert _hover_value(service, make_document, _resource_tree(), 3, 8) == "aws/vpc data source"


def test_definition_field_and_section_hover(make_document) -> None:
    service = _service()
    depends_on = _hover_value(service, make_document, _resource_tree(), 2, 35)
    assert depends_on == "Resources that must be deployed before this one."
    section = _hover_value(service, make_document, _resource_tree(), 1, 3)
    assert section == "Infrastructure resources defined by the blueprint."


def test_hover_range_is_the_hovered_node(make_document) -> None:
    document = make_document("", blueprint=BLUEPRINT, tree=_tree(_reference(1, VariableRef(name="env"))))
    result = _service().hover_for(document, Position(line=0, character=4))
    assert result.range == Range(start=Position(line=0, character=0), end=Position(line=0, character=39))


def test_document_without_tree_has_no_hover(make_document) -> None:
    document = make_document("", blueprint=BLUEPRINT)
    assert _service().hover_for(document, Position(line=0, character=0)) is None
