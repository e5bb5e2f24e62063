"""Recover a reference path from the raw text before the cursor.

The parse tree lags behind typing: when the user has just typed ``.`` or
``[`` the last successful parse knows nothing about it. This parser reads the
current line instead and is only consulted when the tree has no usable
reference node at the cursor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from blueprint_ls.exceptions import NoActiveSubstitution

NAMESPACES = ("resources", "variables", "datasources", "values", "children")
RESERVED_NAMESPACES = frozenset(NAMESPACES) | {"elem"}

# A reference inside a function call starts after the last argument delimiter.
_EXPRESSION_DELIMITERS = re.compile(r"[(,\s]")


@dataclass(frozen=True)
class SubstitutionPath:
    namespace: str
    entity_name: str
    path: tuple[str, ...]
    filter_prefix: str
    standalone: bool = False


def active_substitution(text_before: str) -> tuple[int, str]:
    """Return the offset of the unclosed ``${`` and the text after it."""
    opener = text_before.rfind("${")
    if opener == -1 or "}" in text_before[opener + 2 :]:
        raise NoActiveSubstitution(text_before)
    return opener, text_before[opener + 2 :]


def has_active_substitution(text_before: str) -> bool:
    try:
        active_substitution(text_before)
    except NoActiveSubstitution:
        return False
    return True


def expression_tail(text: str) -> str:
    parts = _EXPRESSION_DELIMITERS.split(text)
    return parts[-1] if parts else text


def split_segments(text: str) -> tuple[list[str], str]:
    """Split a reference into committed segments and the trailing partial.

    ``a.b["c.d"].e`` yields ``["a", "b", "c.d"]`` and ``"e"``. Text after an
    unterminated ``[`` is the partial, with any opening quote removed.
    """
    segments: list[str] = []
    current = ""
    index = 0
    while index < len(text):
        char = text[index]
        if char == ".":
            if current:
                segments.append(current)
            current = ""
        elif char == "[":
            if current:
                segments.append(current)
            current = ""
            close = text.find("]", index)
            if close == -1:
                return segments, text[index + 1 :].strip("\"'")
            inner = text[index + 1 : close].strip("\"'")
            if inner:
                segments.append(inner)
            index = close
        else:
            current += char
        index += 1
    return segments, current.strip("\"'")


def parse_substitution_path(
    text_before: str,
    names_by_namespace: dict[str, set[str]],
) -> SubstitutionPath | None:
    """Resolve the reference being typed to a declared entity.

    Raises NoActiveSubstitution when the cursor is not inside ``${...}``.
    Returns None when no entity name has been committed yet or the name is not
    declared in its namespace.
    """
    _, text = active_substitution(text_before)
    segments, partial = split_segments(expression_tail(text))
    if not segments:
        return None
    standalone = segments[0] not in NAMESPACES
    if standalone and segments[0] in RESERVED_NAMESPACES:
        return None
    namespace = "resources" if standalone else segments[0]
    rest = segments if standalone else segments[1:]
    if not rest:
        return None
    entity_name = rest[0]
    if entity_name not in names_by_namespace.get(namespace, set()):
        return None
    return SubstitutionPath(
        namespace=namespace,
        entity_name=entity_name,
        path=tuple(rest[1:]),
        filter_prefix=partial,
        standalone=standalone,
    )
