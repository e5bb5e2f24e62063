from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pytest

from blueprint_ls import plugins
from blueprint_ls.plugins import Collaborators, discover_collaborators, load_factory
from blueprint_ls.registries import Registries, SpecDefinition
from tests.fakes import (
    FakeFunctionRegistry,
    FakeLoader,
    FakeResourceRegistry,
    FakeValidator,
    fake_collaborators,
)


@dataclass
class _EntryPoint:
    name: str
    factory: Callable[[], object]

    def load(self) -> Callable[[], object]:
        return self.factory


def _install(monkeypatch, *entries: _EntryPoint) -> list[str]:
    groups: list[str] = []

    def _entry_points(group: str) -> list[_EntryPoint]:
        groups.append(group)
        return list(entries)

    monkeypatch.setattr(plugins.metadata, "entry_points", _entry_points)
    return groups


def test_nothing_installed_gives_empty_collaborators(monkeypatch) -> None:
    groups = _install(monkeypatch)
    found = discover_collaborators()
    assert groups == ["blueprint_ls.collaborators"]
    assert found.validator is None
    assert found.child_loader is None
    assert found.registries == Registries()


def test_entry_points_fill_slots_in_name_order(monkeypatch) -> None:
    first_validator = FakeValidator()
    functions = FakeFunctionRegistry()
    _install(
        monkeypatch,
        _EntryPoint(
            "zz-functions",
            lambda: Collaborators(
                validator=FakeValidator(),
                registries=Registries(functions=functions),
            ),
        ),
        _EntryPoint("aa-core", lambda: Collaborators(validator=first_validator)),
    )
    found = discover_collaborators()
    assert found.validator is first_validator
    assert found.registries.functions is functions


def test_explicit_factories_take_precedence(monkeypatch) -> None:
    loader = FakeLoader()
    _install(
        monkeypatch,
        _EntryPoint(
            "installed",
            lambda: Collaborators(
                registries=Registries(
                    resources=FakeResourceRegistry(specs={"aws/table": SpecDefinition()})
                ),
                child_loader=loader,
            ),
        ),
    )
    found = discover_collaborators(factories=["tests.fakes:fake_collaborators"])
    assert isinstance(found.validator, FakeValidator)
    assert found.registries.resources is not None
    assert found.registries.resources.specs == {}
    assert found.child_loader is loader


def test_entry_point_returning_wrong_type_is_rejected(monkeypatch) -> None:
    _install(monkeypatch, _EntryPoint("broken", lambda: Registries()))
    with pytest.raises(TypeError, match="broken"):
        discover_collaborators()


def test_load_factory_resolves_module_attribute() -> None:
    assert load_factory("tests.fakes:fake_collaborators") is fake_collaborators


@pytest.mark.parametrize("spec", ["tests.fakes", ":fake_collaborators", "tests.fakes:"])
def test_load_factory_requires_module_and_attribute(spec: str) -> None:
    with pytest.raises(ValueError):
        load_factory(spec)
