from __future__ import annotations

from blueprint_ls.cache import KeyedCache
from blueprint_ls.docmodel import DocumentContext, DocumentFormat
from blueprint_ls.schema import DocSettings
from blueprint_ls.state import DocumentState

URI = "file:///w/app.yaml"


def test_keyed_cache_operations() -> None:
    cache: KeyedCache[int] = KeyedCache()
    assert cache.get("a") is None
    assert cache.set_if_absent("a", 1) == 1
    assert cache.set_if_absent("a", 2) == 1
    assert cache.set_if_absent("b", 3) == 3
    assert "b" in cache
    assert len(cache) == 2
    cache.delete("a")
    cache.delete("missing")
    assert "a" not in cache
    cache.clear()
    assert len(cache) == 0


def test_document_state_tracks_content_and_context() -> None:
    state = DocumentState()
    state.set_content(URI, "version: 2025-11-02\n")
    context = DocumentContext(uri=URI, content="version: 2025-11-02\n", format=DocumentFormat.YAML)
    state.set_context(URI, context)
    assert state.get_content(URI) == "version: 2025-11-02\n"
    assert state.get_context(URI) is context
    assert state.uris() == [URI]
    state.remove(URI)
    assert state.get_content(URI) is None
    assert state.get_context(URI) is None
    assert state.uris() == []


def test_settings_fall_back_to_defaults() -> None:
    state = DocumentState()
    assert state.get_settings(URI) == DocSettings()
    state.set_default_settings(DocSettings(max_number_of_problems=10))
    assert state.get_settings(URI).max_number_of_problems == 10
    state.set_settings(URI, DocSettings(max_number_of_problems=3))
    assert state.get_settings(URI).max_number_of_problems == 3
    state.clear_settings()
    assert state.get_settings(URI).max_number_of_problems == 10
