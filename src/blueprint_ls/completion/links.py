"""Infer link relationships between the resource being edited and its peers.

A registered link type only says that two resource types can be linked and
which of them is A. Whether a given pair of declared resources is linked, and
which side is A for this pair, also depends on their label selectors.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from blueprint_ls.blueprint import Blueprint, Resource
from blueprint_ls.cache import KeyedCache
from blueprint_ls.deadline import TimeoutExceeded, check_deadline, deadline_loop_iter
from blueprint_ls.exceptions import BlueprintLSError
from blueprint_ls.registries import AppliesTo, LinkAnnotationDefinition, LinkRegistry

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"<[^<>]+>")


@dataclass(frozen=True)
class LinkedResourceInfo:
    name: str
    resource_type: str
    current_is_a: bool


@dataclass(frozen=True)
class AnnotationDefinitionWithContext:
    definition: LinkAnnotationDefinition
    key: str
    target_resource_type: str
    current_is_a: bool
    type_a: str
    type_b: str


def link_cache_key(type_a: str, type_b: str) -> str:
    return f"{type_a}::{type_b}"


def has_matching_selector(
    selector_resource: Resource,
    candidate: Resource,
    candidate_name: str,
) -> bool:
    """Report whether selector_resource's label selector picks candidate."""
    selector = selector_resource.link_selector
    if selector is None or not selector.by_label:
        return False
    if candidate_name in selector.exclude:
        return False
    if candidate.metadata is None or not candidate.metadata.labels:
        return False
    labels = candidate.metadata.labels
    return any(labels.get(key) == value for key, value in selector.by_label.items())


def determine_current_is_a(
    current_selects_other: bool,
    other_selects_current: bool,
    registered_current_is_a: bool,
) -> bool:
    if current_selects_other and not other_selects_current:
        return True
    if other_selects_current and not current_selects_other:
        return False
    return registered_current_is_a


def expand_annotation_name(name: str, linked_names: list[str]) -> list[str]:
    """Expand a single ``<token>`` span once per linked resource name."""
    match = _PLACEHOLDER.search(name)
    if match is None:
        return [name]
    return [
        name[: match.start()] + linked + name[match.end() :] for linked in linked_names
    ]


def annotation_applies_to_current_resource(
    key: str,
    definition: LinkAnnotationDefinition,
    current_is_a: bool,
    type_a: str,
    type_b: str,
) -> bool:
    match definition.applies_to:
        case AppliesTo.A:
            return current_is_a
        case AppliesTo.B:
            return not current_is_a
        case AppliesTo.ANY:
            prefix, separator, _ = key.partition("::")
            if not separator:
                return True
            if type_a == type_b:
                return prefix == type_a
            if prefix == type_a:
                return current_is_a
            if prefix == type_b:
                return not current_is_a
            return False


class LinkRelationshipInferer:
    def __init__(
        self,
        link_registry: LinkRegistry | None,
        cache: KeyedCache[dict[str, LinkAnnotationDefinition]] | None = None,
    ) -> None:
        self.link_registry = link_registry
        self.cache = cache if cache is not None else KeyedCache()

    def set_registry(self, link_registry: LinkRegistry | None) -> None:
        self.link_registry = link_registry
        self.cache.clear()

    def _annotation_definitions(
        self, type_a: str, type_b: str
    ) -> dict[str, LinkAnnotationDefinition] | None:
        """Definitions for the registered A/B pair, or None if not linkable."""
        key = link_cache_key(type_a, type_b)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        if self.link_registry is None:
            return None
        check_deadline("link_registry.link")
        try:
            link = self.link_registry.link(type_a, type_b)
            definitions = dict(link.get_annotation_definitions())
        except TimeoutExceeded:
            raise
        except BlueprintLSError as exc:
            logger.debug("no link for %s: %s", key, exc)
            return None
        except Exception as exc:
            logger.warning("link lookup %s failed: %s", key, exc)
            return None
        return self.cache.set_if_absent(key, definitions)

    def link_direction(self, current_type: str, other_type: str) -> tuple[bool, bool]:
        """Return (linked, current_is_a) from the registered link table."""
        if self._annotation_definitions(current_type, other_type) is not None:
            return True, True
        if self._annotation_definitions(other_type, current_type) is not None:
            return True, False
        return False, False

    def find_linked_resources(
        self, blueprint: Blueprint, resource_name: str
    ) -> list[LinkedResourceInfo]:
        current = blueprint.resources.get(resource_name)
        if current is None or self.link_registry is None:
            return []
        linked: list[LinkedResourceInfo] = []
        for other_name, other in deadline_loop_iter(blueprint.resources.items()):
            if other_name == resource_name:
                continue
            # A registered link type alone does not link two resources.
            current_selects = has_matching_selector(current, other, other_name)
            other_selects = has_matching_selector(other, current, resource_name)
            if not current_selects and not other_selects:
                continue
            is_linked, registered_current_is_a = self.link_direction(
                current.type, other.type
            )
            if not is_linked:
                continue
            current_is_a = determine_current_is_a(
                current_selects, other_selects, registered_current_is_a
            )
            linked.append(
                LinkedResourceInfo(
                    name=other_name,
                    resource_type=other.type,
                    current_is_a=current_is_a,
                )
            )
        return linked

    def collect_annotation_definitions(
        self,
        current_type: str,
        linked: list[LinkedResourceInfo],
    ) -> dict[str, AnnotationDefinitionWithContext]:
        """Definitions visible from the current resource, first definition wins."""
        collected: dict[str, AnnotationDefinitionWithContext] = {}
        for info in linked:
            if info.current_is_a:
                type_a, type_b = current_type, info.resource_type
            else:
                type_a, type_b = info.resource_type, current_type
            # A selector can flip the registered orientation; definitions are
            # always read against the orientation they were registered under.
            current_is_a = info.current_is_a
            definitions = self._annotation_definitions(type_a, type_b)
            if definitions is None:
                definitions = self._annotation_definitions(type_b, type_a)
                if definitions is None:
                    continue
                type_a, type_b = type_b, type_a
                current_is_a = not current_is_a
            for key, definition in definitions.items():
                if key in collected:
                    continue
                if not annotation_applies_to_current_resource(
                    key, definition, current_is_a, type_a, type_b
                ):
                    continue
                collected[key] = AnnotationDefinitionWithContext(
                    definition=definition,
                    key=key,
                    target_resource_type=info.resource_type,
                    current_is_a=current_is_a,
                    type_a=type_a,
                    type_b=type_b,
                )
        return collected

    def annotation_names(
        self,
        blueprint: Blueprint,
        resource_name: str,
    ) -> list[tuple[str, AnnotationDefinitionWithContext]]:
        """Expanded annotation names for resource_name with their definitions."""
        current = blueprint.resources.get(resource_name)
        if current is None:
            return []
        linked = self.find_linked_resources(blueprint, resource_name)
        definitions = self.collect_annotation_definitions(current.type, linked)
        expanded: list[tuple[str, AnnotationDefinitionWithContext]] = []
        seen: set[str] = set()
        for with_context in definitions.values():
            target_names = [
                info.name
                for info in linked
                if info.resource_type == with_context.target_resource_type
            ]
            for name in expand_annotation_name(with_context.definition.name, target_names):
                if name in seen:
                    continue
                seen.add(name)
                expanded.append((name, with_context))
        return expanded

    def find_annotation_definition(
        self,
        blueprint: Blueprint,
        resource_name: str,
        annotation_key: str,
    ) -> AnnotationDefinitionWithContext | None:
        for name, with_context in self.annotation_names(blueprint, resource_name):
            if name == annotation_key:
                return with_context
        return None
