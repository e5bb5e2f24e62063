from __future__ import annotations

import pytest

from blueprint_ls.completion.subpath import (
    SubstitutionPath,
    active_substitution,
    expression_tail,
    has_active_substitution,
    parse_substitution_path,
    split_segments,
)
from blueprint_ls.exceptions import NoActiveSubstitution

NAMES = {
    "resources": {"ordersTable", "handler"},
    "values": {"config"},
    "datasources": {"network"},
    "variables": {"region"},
    "children": {"core"},
}


def test_active_substitution_finds_unclosed_opener() -> None:
    assert active_substitution('name: "${resources.orders') == (7, "resources.orders")
    assert has_active_substitution("${")
    assert not has_active_substitution("${variables.region}-suffix")
    with pytest.raises(NoActiveSubstitution):
        active_substitution("plain text")


def test_expression_tail_skips_function_arguments() -> None:
    assert expression_tail('join(",", resources.handler.sp') == "resources.handler.sp"
    assert expression_tail("values.config") == "values.config"


def test_split_segments_handles_bracketed_keys() -> None:
    assert split_segments('a.b["c.d"].e') == (["a", "b", "c.d"], "e")
    assert split_segments("a.b.") == (["a", "b"], "")
    assert split_segments("a[\"par") == (["a"], "par")


def test_parse_substitution_path_for_namespaced_reference() -> None:
    parsed = parse_substitution_path(
        "${resources.ordersTable.spec.bill", NAMES
    )
    assert parsed == SubstitutionPath(
        namespace="resources",
        entity_name="ordersTable",
        path=("spec",),
        filter_prefix="bill",
    )


def test_parse_substitution_path_for_standalone_resource() -> None:
    parsed = parse_substitution_path("${handler.", NAMES)
    assert parsed is not None
    assert parsed.standalone
    assert parsed.namespace == "resources"
    assert parsed.entity_name == "handler"
    assert parsed.path == ()


def test_parse_substitution_path_for_bracketed_value_key() -> None:
    parsed = parse_substitution_path('${values.config["app.name"].', NAMES)
    assert parsed is not None
    assert parsed.path == ("app.name",)


def test_parse_substitution_path_requires_declared_entity() -> None:
    assert parse_substitution_path("${resources.", NAMES) is None
    assert parse_substitution_path("${resources.missing.", NAMES) is None
    assert parse_substitution_path("${reso", NAMES) is None
    assert parse_substitution_path("${elem.", {"resources": {"elem"}}) is None
    with pytest.raises(NoActiveSubstitution):
        parse_substitution_path("resources.handler.", NAMES)
