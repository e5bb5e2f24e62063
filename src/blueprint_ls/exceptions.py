"""Exception types shared across the blueprint language server."""

from __future__ import annotations


class BlueprintLSError(Exception):
    """Base class for recoverable language-server errors."""


class NeverRaise(RuntimeError):
    """Sentinel exception for code paths that must be unreachable.

    Reaching one of these is a bug in the caller, not a property of the
    document being edited, so request handlers log it and return an empty
    result rather than surfacing it as a diagnostic.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""


class NoActiveSubstitution(BlueprintLSError):
    """Raised when the text before the cursor has no unclosed ``${``."""


class UnsupportedFormatError(BlueprintLSError):
    """Raised for a document whose extension is not a blueprint format."""

    def __init__(self, path: str) -> None:
        super().__init__(f"unsupported blueprint format: {path}")
        self.path = path


class LinkNotFoundError(BlueprintLSError):
    """Raised by link registries when no link is registered for a pair."""

    def __init__(self, resource_type_a: str, resource_type_b: str) -> None:
        super().__init__(
            f"no link registered between {resource_type_a} and {resource_type_b}"
        )
        self.resource_type_a = resource_type_a
        self.resource_type_b = resource_type_b
