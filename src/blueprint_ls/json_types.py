"""JSON-like value types used at protocol boundaries.

Settings payloads and completion resolve data cross the wire as JSON; these
aliases keep that value space explicit instead of falling back to ``Any``.
"""

from __future__ import annotations

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
