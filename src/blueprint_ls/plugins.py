"""Discovery of the validator, registries and loader the server runs with.

The language services never parse or validate blueprints themselves. A
distribution that can do so advertises a factory under the
``blueprint_ls.collaborators`` entry-point group; the factory takes no
arguments and returns a ``Collaborators``. When several providers are
installed, each slot is taken from the first provider (in entry-point name
order) that fills it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from importlib import import_module, metadata
from typing import Callable

from blueprint_ls.child_resolver import BlueprintLoader
from blueprint_ls.registries import Registries
from blueprint_ls.validation import BlueprintValidator

logger = logging.getLogger(__name__)

ENTRYPOINT_GROUP = "blueprint_ls.collaborators"


@dataclass
class Collaborators:
    validator: BlueprintValidator | None = None
    registries: Registries = field(default_factory=Registries)
    child_loader: BlueprintLoader | None = None

    def fill_from(self, other: "Collaborators") -> None:
        if self.validator is None:
            self.validator = other.validator
        if self.child_loader is None:
            self.child_loader = other.child_loader
        for registry_field in fields(Registries):
            name = registry_field.name
            if getattr(self.registries, name) is None:
                setattr(self.registries, name, getattr(other.registries, name))


def _as_collaborators(source: str, factory: Callable[[], object]) -> Collaborators:
    provided = factory()
    if not isinstance(provided, Collaborators):
        raise TypeError(f"{source} did not return Collaborators.")
    return provided


def load_factory(spec: str) -> Callable[[], object]:
    """Import a ``module:attribute`` factory reference."""
    module_name, sep, attribute = spec.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"expected module:attribute, got {spec!r}")
    return getattr(import_module(module_name), attribute)


def discover_collaborators(
    *,
    factories: list[str] | None = None,
    group: str = ENTRYPOINT_GROUP,
) -> Collaborators:
    """Merge explicit factories first, then installed entry points."""
    merged = Collaborators()
    for spec in factories or []:
        merged.fill_from(_as_collaborators(spec, load_factory(spec)))
    entries = sorted(metadata.entry_points(group=group), key=lambda entry: entry.name)
    for entry in entries:
        logger.info("loading collaborators from %s", entry.name)
        merged.fill_from(_as_collaborators(f"Entry point {entry.name!r}", entry.load()))
    if merged.validator is None:
        logger.warning("no blueprint validator installed; diagnostics are disabled")
    return merged
