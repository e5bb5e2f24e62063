"""Signature help for function calls inside substitutions."""

from __future__ import annotations

import logging
import re

from lsprotocol.types import (
    MarkupContent,
    MarkupKind,
    ParameterInformation,
    Position,
    SignatureHelp,
    SignatureInformation,
)

from blueprint_ls.completion.subpath import active_substitution
from blueprint_ls.deadline import TimeoutExceeded, check_deadline
from blueprint_ls.docmodel import DocumentContext
from blueprint_ls.exceptions import NoActiveSubstitution
from blueprint_ls.registries import FunctionDefinition, Registries
from blueprint_ls.state import DocumentState

logger = logging.getLogger(__name__)

SIGNATURE_TRIGGER_CHARACTERS = ["(", ","]

_CALL_NAME = re.compile(r"([A-Za-z_][\w]*)\s*$")


def call_at(expression: str) -> tuple[str, int] | None:
    """The innermost unclosed call in expression and its active argument index.

    Commas inside string literals or nested ``[...]`` do not advance the
    argument index.
    """
    # Each entry is [callee or None for a bracket, commas seen].
    stack: list[list] = []
    quote: str | None = None
    escaped = False
    for index, char in enumerate(expression):
        if quote is not None:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char == "(":
            match = _CALL_NAME.search(expression[:index])
            stack.append([match.group(1) if match else "", 0])
        elif char == "[":
            stack.append([None, 0])
        elif char in ")]" and stack:
            stack.pop()
        elif char == "," and stack:
            stack[-1][1] += 1
    for callee, commas in reversed(stack):
        if callee:
            return callee, commas
        if callee == "":
            return None
    return None


def _active_parameter(definition: FunctionDefinition, argument: int) -> int:
    parameters = definition.parameters
    if not parameters:
        return 0
    if argument >= len(parameters) and parameters[-1].variadic:
        return len(parameters) - 1
    return min(argument, len(parameters) - 1)


def signature_information(definition: FunctionDefinition) -> SignatureInformation:
    documentation = (
        definition.formatted_description or definition.description or definition.summary
    )
    return SignatureInformation(
        label=definition.signature_label(),
        documentation=MarkupContent(kind=MarkupKind.Markdown, value=documentation)
        if documentation
        else None,
        parameters=[
            ParameterInformation(
                label=parameter.label(),
                documentation=parameter.description or None,
            )
            for parameter in definition.parameters
        ],
    )


class SignatureService:
    def __init__(self, state: DocumentState, registries: Registries | None = None) -> None:
        self.state = state
        self.registries = registries or Registries()

    def set_registries(self, registries: Registries) -> None:
        self.registries = registries

    def signature_help(self, uri: str, position: Position) -> SignatureHelp | None:
        document = self.state.get_context(uri)
        if document is None:
            return None
        return self.signature_help_for(document, position)

    def signature_help_for(
        self, document: DocumentContext, position: Position
    ) -> SignatureHelp | None:
        text_before = document.line_text(position.line + 1)[: position.character]
        try:
            _, expression = active_substitution(text_before)
        except NoActiveSubstitution:
            return None
        call = call_at(expression)
        registry = self.registries.functions
        if call is None or registry is None:
            return None
        name, argument = call
        check_deadline("functions.get_definition")
        try:
            definition = registry.get_definition(name)
        except TimeoutExceeded:
            raise
        except Exception as exc:
            logger.debug("no definition for function %s: %s", name, exc)
            return None
        return SignatureHelp(
            signatures=[signature_information(definition)],
            active_signature=0,
            active_parameter=_active_parameter(definition, argument),
        )
