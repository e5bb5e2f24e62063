"""Resolve included child blueprints and the exports they declare."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Protocol

from blueprint_ls.blueprint import Blueprint, Include
from blueprint_ls.cache import KeyedCache
from blueprint_ls.deadline import TimeoutExceeded
from blueprint_ls.docmodel import DocumentFormat, format_from_path, uri_to_path
from blueprint_ls.errors import LoadError, SchemaError
from blueprint_ls.exceptions import UnsupportedFormatError

logger = logging.getLogger(__name__)

REMOTE_PATH_PREFIXES = ("http://", "https://", "s3://", "gs://")
REMOTE_SOURCE_METADATA_FIELDS = ("sourceType", "source", "type", "provider", "protocol")

_SUBSTITUTION = re.compile(r"\$\{([^}]*)\}")
_CWD_CALL = re.compile(r"^\s*cwd\(\s*\)\s*$")


class BlueprintLoader(Protocol):
    def load(self, path: str, document_format: DocumentFormat) -> Blueprint:
        """Load and parse the blueprint at path."""
        ...


@dataclass(frozen=True)
class ChildExportInfo:
    name: str
    type: str
    description: str | None = None
    field: str | None = None


def is_remote_include(include: Include) -> bool:
    for name in REMOTE_SOURCE_METADATA_FIELDS:
        value = include.metadata.get(name)
        if isinstance(value, str) and value:
            return True
    return include.path.startswith(REMOTE_PATH_PREFIXES)


def _expand_include_path(path: str, working_dir: str) -> str | None:
    """Substitute ``${cwd()}``; any other substitution leaves the path unresolvable."""
    unresolvable = False

    def _replace(match: re.Match[str]) -> str:
        nonlocal unresolvable
        if _CWD_CALL.match(match.group(1)):
            return working_dir
        unresolvable = True
        return ""

    expanded = _SUBSTITUTION.sub(_replace, path)
    if unresolvable or not expanded:
        return None
    return expanded


class ChildBlueprintResolver:
    def __init__(
        self,
        loader: BlueprintLoader | None = None,
        cache: KeyedCache[dict[str, ChildExportInfo]] | None = None,
    ) -> None:
        self.loader = loader
        self.cache = cache if cache is not None else KeyedCache()

    def resolve_include_path(self, parent_uri: str, include: Include) -> str | None:
        if is_remote_include(include):
            return None
        parent_dir = os.path.dirname(str(uri_to_path(parent_uri)))
        resolved = _expand_include_path(include.path, parent_dir)
        if resolved is None:
            return None
        if not os.path.isabs(resolved):
            if not parent_dir:
                return None
            resolved = os.path.join(parent_dir, resolved)
        return os.path.normpath(resolved)

    def child_exports(self, parent_uri: str, include: Include) -> dict[str, ChildExportInfo]:
        path = self.resolve_include_path(parent_uri, include)
        if path is None:
            return {}
        cached = self.cache.get(path)
        if cached is not None:
            return cached
        exports = self._load_exports(path)
        if exports is None:
            return {}
        return self.cache.set_if_absent(path, exports)

    def _load_exports(self, path: str) -> dict[str, ChildExportInfo] | None:
        if self.loader is None:
            return None
        try:
            document_format = format_from_path(path)
            child = self.loader.load(path, document_format)
        except UnsupportedFormatError as exc:
            logger.debug("%s", exc)
            return None
        except TimeoutExceeded:
            raise
        except (OSError, ValueError, LoadError, SchemaError) as exc:
            logger.warning("failed to load child blueprint %s: %s", path, exc)
            return None
        return {
            name: ChildExportInfo(
                name=name,
                type=export.type,
                description=export.description,
                field=export.field,
            )
            for name, export in child.exports.items()
        }

    def invalidate_uri(self, uri: str) -> None:
        self.cache.delete(os.path.normpath(str(uri_to_path(uri))))
