"""Run the external validator over a document and collect its diagnostics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from lsprotocol.types import Diagnostic

from blueprint_ls.blueprint import Blueprint, TreeNode
from blueprint_ls.deadline import TimeoutExceeded
from blueprint_ls.diagnostics import (
    BlueprintDiagnostic,
    DuplicateKey,
    blueprint_diagnostics_to_lsp,
    blueprint_error_to_diagnostics,
    deduplicate,
    duplicate_key_diagnostics,
)
from blueprint_ls.docmodel import DocumentContext, DocumentFormat, format_from_uri
from blueprint_ls.exceptions import UnsupportedFormatError
from blueprint_ls.state import DocumentState

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    blueprint: Blueprint | None = None
    tree: TreeNode | None = None
    error: BaseException | None = None
    diagnostics: list[BlueprintDiagnostic] = field(default_factory=list)
    duplicate_keys: list[DuplicateKey] = field(default_factory=list)


class BlueprintValidator(Protocol):
    def validate(
        self, uri: str, content: str, document_format: DocumentFormat
    ) -> ValidationResult:
        """Parse and validate content; errors are returned, not raised."""
        ...


class ValidationService:
    def __init__(
        self,
        state: DocumentState,
        validator: BlueprintValidator | None = None,
        *,
        show_any_type_warnings: bool = False,
    ) -> None:
        self.state = state
        self.validator = validator
        self.show_any_type_warnings = show_any_type_warnings

    def _run_validator(
        self, uri: str, content: str, document_format: DocumentFormat
    ) -> ValidationResult | None:
        if self.validator is None:
            return ValidationResult()
        try:
            return self.validator.validate(uri, content, document_format)
        except TimeoutExceeded:
            logger.warning("validation deadline exceeded for %s", uri)
            return None
        except Exception as exc:
            # Reported to the user as a diagnostic instead of failing the request.
            logger.exception("validator failed for %s", uri)
            return ValidationResult(error=exc)

    def validate(self, uri: str) -> list[Diagnostic]:
        """Refresh the parsed context for uri and return its diagnostics."""
        content = self.state.get_content(uri)
        if content is None:
            return []
        try:
            document_format = format_from_uri(uri)
        except UnsupportedFormatError as exc:
            logger.info("%s", exc)
            return []
        result = self._run_validator(uri, content, document_format)
        if result is None:
            return []
        previous = self.state.get_context(uri) or DocumentContext(
            uri=uri, content=content, format=document_format
        )
        self.state.set_context(uri, previous.updated(content, result.blueprint, result.tree))
        settings = self.state.get_settings(uri)
        show_any = self.show_any_type_warnings or settings.show_any_type_warnings
        diagnostics = deduplicate(
            [
                *blueprint_error_to_diagnostics(result.error),
                *blueprint_diagnostics_to_lsp(result.diagnostics, show_any_type_warnings=show_any),
                *duplicate_key_diagnostics(uri, result.duplicate_keys),
            ]
        )
        return diagnostics[: settings.max_number_of_problems]
