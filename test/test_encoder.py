"""Tests for the ESC/POS command encoder."""

import pytest

import encoder
from directives import AlignCenter, AlignLeft, Bold, Cut, DoubleHeight, Newline, Text
from encoder import EncodingError, encode, encode_document, initialize_sequence


@pytest.mark.parametrize(
    "directive, expected",
    [
        (AlignLeft(), b"\x1b\x61\x00"),
        (AlignCenter(), b"\x1b\x61\x01"),
        (Bold(True), b"\x1b\x45\x01"),
        (Bold(False), b"\x1b\x45\x00"),
        (DoubleHeight(True), b"\x1d\x21\x01"),
        (DoubleHeight(False), b"\x1d\x21\x00"),
        (Newline(), b"\x0a"),
        (Cut(), b"\x1d\x56\x00"),
    ],
)
def test_control_directives_map_to_fixed_bytes(directive, expected):
    assert encode(directive) == expected


def test_text_uses_device_code_page():
    assert encode(Text("Ação"), "cp860") == "Ação".encode("cp860")
    assert encode(Text("hello")) == b"hello"


def test_text_outside_code_page_is_replaced_not_dropped():
    data = encode(Text("a€b"), "cp860")
    assert data == b"a?b"
    assert len(data) == 3


def test_document_is_concatenation_in_order():
    doc = (AlignCenter(), Bold(True), Text("HI"), Bold(False), Newline(), AlignLeft(), Cut())
    assert encode_document(doc) == b"".join(encode(d) for d in doc)
    assert encode_document(doc).startswith(encoder.ALIGN_CENTER + encoder.BOLD_ON + b"HI")


def test_document_length_is_sum_of_parts():
    doc = (Bold(True), Text("abc"), Newline(), Text("de"), Bold(False), Cut())
    fixed = len(encoder.BOLD_ON) + len(encoder.NEW_LINE) + len(encoder.BOLD_OFF) + len(encoder.CUT)
    assert len(encode_document(doc)) == fixed + len("abc") + len("de")


def test_encoding_is_deterministic():
    doc = (Text("Tarefa"), Newline(), Cut())
    assert encode_document(doc) == encode_document(doc)


def test_repeated_toggles_are_not_merged():
    doc = (Bold(True), Bold(True), Bold(False))
    assert encode_document(doc) == encoder.BOLD_ON * 2 + encoder.BOLD_OFF


def test_unknown_directive_is_a_programming_error():
    with pytest.raises(EncodingError):
        encode("not a directive")  # type: ignore[arg-type]


def test_initialize_sequence_resets_and_selects_codepage():
    assert initialize_sequence(3) == b"\x1b\x40\x1bt\x03"
