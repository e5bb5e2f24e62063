from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from contextlib import ExitStack, contextmanager

from lsprotocol.types import (
    COMPLETION_ITEM_RESOLVE,
    INITIALIZE,
    TEXT_DOCUMENT_CODE_ACTION,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_DOCUMENT_SYMBOL,
    TEXT_DOCUMENT_HOVER,
    TEXT_DOCUMENT_REFERENCES,
    TEXT_DOCUMENT_SIGNATURE_HELP,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    CodeAction,
    CodeActionKind,
    CodeActionOptions,
    CodeActionParams,
    CompletionItem,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DefinitionParams,
    Diagnostic,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    DocumentSymbol,
    DocumentSymbolParams,
    Hover,
    HoverParams,
    InitializeParams,
    Location,
    LocationLink,
    PublishDiagnosticsParams,
    ReferenceParams,
    SignatureHelp,
    SignatureHelpOptions,
    SignatureHelpParams,
)
from pygls.lsp.server import LanguageServer

from blueprint_ls import __version__
from blueprint_ls.child_resolver import BlueprintLoader, ChildBlueprintResolver
from blueprint_ls.codeactions import CodeActionService
from blueprint_ls.completion.links import LinkRelationshipInferer
from blueprint_ls.completion.service import CompletionService
from blueprint_ls.config import ServerConfig
from blueprint_ls.deadline import (
    CheckBudget,
    Deadline,
    TimeoutExceeded,
    check_budget_scope,
    deadline_scope,
)
from blueprint_ls.definitions import DefinitionService
from blueprint_ls.hover import HoverService
from blueprint_ls.json_types import JSONValue
from blueprint_ls.references import ReferenceService
from blueprint_ls.registries import Registries
from blueprint_ls.schema import DocSettings, parse_doc_settings
from blueprint_ls.signature import SIGNATURE_TRIGGER_CHARACTERS, SignatureService
from blueprint_ls.state import DocumentState
from blueprint_ls.symbols import SymbolService
from blueprint_ls.validation import BlueprintValidator, ValidationService

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "blueprintLanguageServer"
COMPLETION_TRIGGER_CHARACTERS = ["{", ",", "(", ".", '"', "[", ":", " "]


class BlueprintLanguageServer(LanguageServer):
    """pygls server that owns the document state and the language services."""

    def __init__(
        self,
        *,
        validator: BlueprintValidator | None = None,
        registries: Registries | None = None,
        child_loader: BlueprintLoader | None = None,
        config: ServerConfig | None = None,
    ) -> None:
        super().__init__("blueprint-ls", __version__)
        self.config = config or ServerConfig()
        self.registries = registries or Registries()
        self.state = DocumentState()
        self.state.set_default_settings(
            DocSettings(
                max_number_of_problems=self.config.max_number_of_problems,
                show_any_type_warnings=self.config.show_any_type_warnings,
            )
        )
        self.child_resolver = ChildBlueprintResolver(child_loader)
        self.completion_service = CompletionService(
            self.state,
            self.registries,
            LinkRelationshipInferer(self.registries.links),
            self.child_resolver,
            key_completions_in_jsonc=self.config.enable_key_completions_jsonc,
            column_leeway=self.config.column_leeway,
        )
        self.definition_service = DefinitionService(
            self.state, self.child_resolver, column_leeway=self.config.column_leeway
        )
        self.hover_service = HoverService(
            self.state, self.registries, column_leeway=self.config.column_leeway
        )
        self.symbol_service = SymbolService(self.state)
        self.reference_service = ReferenceService(
            self.state, column_leeway=self.config.column_leeway
        )
        self.code_action_service = CodeActionService()
        self.signature_service = SignatureService(self.state, self.registries)
        self.validation_service = ValidationService(
            self.state,
            validator,
            show_any_type_warnings=self.config.show_any_type_warnings,
        )

    @contextmanager
    def request_scope(self):
        with ExitStack() as stack:
            stack.enter_context(
                deadline_scope(Deadline.from_timeout_ms(self.config.request_timeout_ms))
            )
            if self.config.request_check_budget:
                stack.enter_context(
                    check_budget_scope(CheckBudget(limit=self.config.request_check_budget))
                )
            yield

    def set_registries(self, registries: Registries) -> None:
        self.registries = registries
        self.completion_service.set_registries(registries)
        self.hover_service.set_registries(registries)
        self.signature_service.set_registries(registries)

    def publish(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    def validate_and_publish(self, uri: str) -> None:
        with self.request_scope():
            diagnostics = self.validation_service.validate(uri)
        self.publish(uri, diagnostics)


def _offset(content: str, line: int, character: int) -> int:
    lines = content.split("\n")
    if line >= len(lines):
        return len(content)
    return sum(len(text) + 1 for text in lines[:line]) + min(character, len(lines[line]))


def apply_content_changes(content: str, changes: Iterable[object]) -> str:
    """Apply full or incremental text changes in order."""
    for change in changes:
        change_range = getattr(change, "range", None)
        text = getattr(change, "text", "")
        if change_range is None:
            content = text
            continue
        start = _offset(content, change_range.start.line, change_range.start.character)
        end = _offset(content, change_range.end.line, change_range.end.character)
        content = content[:start] + text + content[end:]
    return content


def initialize(ls: BlueprintLanguageServer, params: InitializeParams) -> None:
    text_document = getattr(params.capabilities, "text_document", None)
    definition = getattr(text_document, "definition", None)
    capabilities = ls.state.capabilities
    capabilities.definition_link_support = bool(getattr(definition, "link_support", False))
    symbol_capability = getattr(text_document, "document_symbol", None)
    capabilities.hierarchical_document_symbol_support = bool(
        getattr(symbol_capability, "hierarchical_document_symbol_support", False)
    )
    logger.info("initialized blueprint-ls %s", __version__)


def did_open(ls: BlueprintLanguageServer, params: DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ls.state.set_content(uri, params.text_document.text)
    ls.validate_and_publish(uri)


def did_change(ls: BlueprintLanguageServer, params: DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    content = ls.state.get_content(uri) or ""
    ls.state.set_content(uri, apply_content_changes(content, params.content_changes))
    ls.child_resolver.invalidate_uri(uri)
    ls.validate_and_publish(uri)


def did_save(ls: BlueprintLanguageServer, params: DidSaveTextDocumentParams) -> None:
    uri = params.text_document.uri
    if params.text is not None:
        ls.state.set_content(uri, params.text)
    ls.child_resolver.invalidate_uri(uri)
    ls.validate_and_publish(uri)


def did_close(ls: BlueprintLanguageServer, params: DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    ls.state.remove(uri)
    ls.child_resolver.invalidate_uri(uri)
    ls.publish(uri, [])


def did_change_configuration(
    ls: BlueprintLanguageServer, params: DidChangeConfigurationParams
) -> None:
    payload: JSONValue = params.settings
    if isinstance(payload, dict) and isinstance(payload.get(SETTINGS_SECTION), dict):
        payload = payload[SETTINGS_SECTION]
    ls.state.set_default_settings(parse_doc_settings(payload))
    ls.state.clear_settings()
    for uri in ls.state.uris():
        ls.validate_and_publish(uri)


def completion(ls: BlueprintLanguageServer, params: CompletionParams) -> CompletionList:
    try:
        with ls.request_scope():
            return ls.completion_service.completion_list(
                params.text_document.uri, params.position
            )
    except TimeoutExceeded:
        logger.warning("completion deadline exceeded for %s", params.text_document.uri)
        return CompletionList(is_incomplete=False, items=[])
    except Exception:
        logger.exception("completion failed for %s", params.text_document.uri)
        return CompletionList(is_incomplete=False, items=[])


def completion_resolve(ls: BlueprintLanguageServer, item: CompletionItem) -> CompletionItem:
    try:
        with ls.request_scope():
            return ls.completion_service.resolve(item)
    except Exception:
        logger.exception("resolve failed for %s", item.label)
        return item


def definition(
    ls: BlueprintLanguageServer, params: DefinitionParams
) -> Sequence[LocationLink] | Sequence[Location]:
    try:
        with ls.request_scope():
            links = ls.definition_service.definitions(
                params.text_document.uri, params.position
            )
    except TimeoutExceeded:
        logger.warning("definition deadline exceeded for %s", params.text_document.uri)
        return []
    except Exception:
        logger.exception("definition failed for %s", params.text_document.uri)
        return []
    if ls.state.capabilities.definition_link_support:
        return links
    return [Location(uri=link.target_uri, range=link.target_selection_range) for link in links]


def hover(ls: BlueprintLanguageServer, params: HoverParams) -> Hover | None:
    try:
        with ls.request_scope():
            return ls.hover_service.hover(params.text_document.uri, params.position)
    except TimeoutExceeded:
        logger.warning("hover deadline exceeded for %s", params.text_document.uri)
        return None
    except Exception:
        logger.exception("hover failed for %s", params.text_document.uri)
        return None


def document_symbol(
    ls: BlueprintLanguageServer, params: DocumentSymbolParams
) -> list[DocumentSymbol]:
    if not ls.state.capabilities.hierarchical_document_symbol_support:
        return []
    try:
        with ls.request_scope():
            return ls.symbol_service.symbols(params.text_document.uri)
    except Exception:
        logger.exception("document symbols failed for %s", params.text_document.uri)
        return []


def references(ls: BlueprintLanguageServer, params: ReferenceParams) -> list[Location]:
    try:
        with ls.request_scope():
            return ls.reference_service.references(
                params.text_document.uri,
                params.position,
                params.context.include_declaration,
            )
    except TimeoutExceeded:
        logger.warning("references deadline exceeded for %s", params.text_document.uri)
        return []
    except Exception:
        logger.exception("references failed for %s", params.text_document.uri)
        return []


def code_action(ls: BlueprintLanguageServer, params: CodeActionParams) -> list[CodeAction]:
    try:
        return ls.code_action_service.code_actions(
            params.text_document.uri, params.range, list(params.context.diagnostics)
        )
    except Exception:
        logger.exception("code actions failed for %s", params.text_document.uri)
        return []


def signature_help(
    ls: BlueprintLanguageServer, params: SignatureHelpParams
) -> SignatureHelp | None:
    try:
        with ls.request_scope():
            return ls.signature_service.signature_help(
                params.text_document.uri, params.position
            )
    except TimeoutExceeded:
        logger.warning("signature help deadline exceeded for %s", params.text_document.uri)
        return None
    except Exception:
        logger.exception("signature help failed for %s", params.text_document.uri)
        return None


def create_server(
    *,
    validator: BlueprintValidator | None = None,
    registries: Registries | None = None,
    child_loader: BlueprintLoader | None = None,
    config: ServerConfig | None = None,
) -> BlueprintLanguageServer:
    server = BlueprintLanguageServer(
        validator=validator,
        registries=registries,
        child_loader=child_loader,
        config=config,
    )
    server.feature(INITIALIZE)(initialize)
    server.feature(TEXT_DOCUMENT_DID_OPEN)(did_open)
    server.feature(TEXT_DOCUMENT_DID_CHANGE)(did_change)
    server.feature(TEXT_DOCUMENT_DID_SAVE)(did_save)
    server.feature(TEXT_DOCUMENT_DID_CLOSE)(did_close)
    server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)(did_change_configuration)
    server.feature(
        TEXT_DOCUMENT_COMPLETION,
        CompletionOptions(
            trigger_characters=COMPLETION_TRIGGER_CHARACTERS,
            resolve_provider=True,
        ),
    )(completion)
    server.feature(COMPLETION_ITEM_RESOLVE)(completion_resolve)
    server.feature(TEXT_DOCUMENT_DEFINITION)(definition)
    server.feature(TEXT_DOCUMENT_HOVER)(hover)
    server.feature(TEXT_DOCUMENT_DOCUMENT_SYMBOL)(document_symbol)
    server.feature(TEXT_DOCUMENT_REFERENCES)(references)
    server.feature(
        TEXT_DOCUMENT_CODE_ACTION,
        CodeActionOptions(code_action_kinds=[CodeActionKind.QuickFix]),
    )(code_action)
    server.feature(
        TEXT_DOCUMENT_SIGNATURE_HELP,
        SignatureHelpOptions(trigger_characters=SIGNATURE_TRIGGER_CHARACTERS),
    )(signature_help)
    return server


def start(
    start_fn: Callable[[], None] | None = None,
    *,
    server: BlueprintLanguageServer | None = None,
) -> None:
    """Start the language server over stdio."""
    (start_fn or (server or create_server()).start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()
