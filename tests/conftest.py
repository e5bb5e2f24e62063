from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from blueprint_ls.deadline import CheckBudget, Deadline, check_budget_scope, deadline_scope
from blueprint_ls.docmodel import DocumentContext, DocumentFormat
from blueprint_ls.state import DocumentState


@pytest.fixture(autouse=True)
def _deadline_scope_fixture():
    with deadline_scope(Deadline.from_timeout_ms(120_000)):
        with check_budget_scope(CheckBudget(limit=100_000_000)):
            yield


@pytest.fixture
def make_document():
    def _make(
        content: str,
        *,
        uri: str = "file:///workspace/app.blueprint.yaml",
        document_format: DocumentFormat | None = None,
        blueprint=None,
        tree=None,
    ) -> DocumentContext:
        if document_format is None:
            document_format = (
                DocumentFormat.JSONC if uri.endswith(".jsonc") else DocumentFormat.YAML
            )
        return DocumentContext(
            uri=uri,
            content=content,
            format=document_format,
            blueprint=blueprint,
            tree=tree,
        )

    return _make


@pytest.fixture
def state() -> DocumentState:
    return DocumentState()
