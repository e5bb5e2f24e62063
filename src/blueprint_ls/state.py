from __future__ import annotations

import threading
from dataclasses import dataclass

from blueprint_ls.docmodel import DocumentContext
from blueprint_ls.schema import DocSettings


@dataclass
class ClientCapabilities:
    definition_link_support: bool = False
    hierarchical_document_symbol_support: bool = False


class DocumentState:
    """Per-URI content, parsed context, and settings.

    Owned by the server and handed to each service; one lock guards all of it
    and is never held across a registry call.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._content: dict[str, str] = {}
        self._contexts: dict[str, DocumentContext] = {}
        self._settings: dict[str, DocSettings] = {}
        self._default_settings = DocSettings()
        self.capabilities = ClientCapabilities()

    def get_content(self, uri: str) -> str | None:
        with self._lock:
            return self._content.get(uri)

    def set_content(self, uri: str, content: str) -> None:
        with self._lock:
            self._content[uri] = content

    def get_context(self, uri: str) -> DocumentContext | None:
        with self._lock:
            return self._contexts.get(uri)

    def set_context(self, uri: str, context: DocumentContext) -> None:
        with self._lock:
            self._contexts[uri] = context

    def get_settings(self, uri: str) -> DocSettings:
        with self._lock:
            return self._settings.get(uri, self._default_settings)

    def set_settings(self, uri: str, settings: DocSettings) -> None:
        with self._lock:
            self._settings[uri] = settings

    def set_default_settings(self, settings: DocSettings) -> None:
        with self._lock:
            self._default_settings = settings

    def clear_settings(self) -> None:
        with self._lock:
            self._settings.clear()

    def remove(self, uri: str) -> None:
        with self._lock:
            self._content.pop(uri, None)
            self._contexts.pop(uri, None)
            self._settings.pop(uri, None)

    def uris(self) -> list[str]:
        with self._lock:
            return list(self._content)
