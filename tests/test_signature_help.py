from __future__ import annotations

import pytest
from lsprotocol.types import Position

from blueprint_ls.registries import FunctionDefinition, FunctionParameter, Registries
from blueprint_ls.signature import SignatureService, call_at
from tests.fakes import FakeFunctionRegistry

JOIN = FunctionDefinition(
    name="join",
    summary="Joins strings.",
    formatted_description="Joins an array of strings with a **delimiter**.",
    parameters=(
        FunctionParameter("values", "array", "Strings to join."),
        FunctionParameter("delimiter", "string"),
    ),
    return_type="string",
)
CONCAT = FunctionDefinition(
    name="concat",
    parameters=(FunctionParameter("items", "array", variadic=True),),
    return_type="array",
)


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("join(", ("join", 0)),
        ("join(values.names, ", ("join", 1)),
        ('join(values.names, ","', ("join", 1)),
        ('join(split("a,b", ","), ', ("join", 1)),
        ('join(split("a,b", ', ("split", 1)),
        ("join([1, 2, ", ("join", 0)),
        ("join([1, 2], ", ("join", 1)),
        ("join(values.a)", None),
        ("values.a", None),
    ],
)
def test_call_at(expression: str, expected) -> None:
    assert call_at(expression) == expected


def _service(state) -> SignatureService:
    return SignatureService(
        state,
        Registries(functions=FakeFunctionRegistry(functions={"join": JOIN, "concat": CONCAT})),
    )


def test_signature_for_open_call(state, make_document) -> None:
    text = 'value: "${join(values.names, '
    document = make_document(text)
    help_ = _service(state).signature_help_for(document, Position(line=0, character=len(text)))
    assert help_.active_signature == 0
    assert help_.active_parameter == 1
    [signature] = help_.signatures
    assert signature.label == "join(values: array, delimiter: string) -> string"
    assert signature.documentation.value == "Joins an array of strings with a **delimiter**."
    assert [parameter.label for parameter in signature.parameters] == [
        "values: array",
        "delimiter: string",
    ]
    assert signature.parameters[0].documentation == "Strings to join."


def test_variadic_parameter_stays_active(state, make_document) -> None:
    text = "items: ${concat(values.a, values.b, values.c, "
    document = make_document(text)
    help_ = _service(state).signature_help_for(document, Position(line=0, character=len(text)))
    assert help_.signatures[0].label == "concat(...items: array) -> array"
    assert help_.active_parameter == 0


@pytest.mark.parametrize(
    "text",
    [
        "value: join(",
        "value: ${join(values.a)} and ",
        "value: ${unknownFn(",
    ],
)
def test_no_signature_outside_a_known_call(state, make_document, text: str) -> None:
    document = make_document(text)
    assert _service(state).signature_help_for(document, Position(line=0, character=len(text))) is None


def test_no_signature_without_function_registry(state, make_document) -> None:
    text = "value: ${join("
    service = SignatureService(state)
    assert service.signature_help_for(make_document(text), Position(line=0, character=len(text))) is None
