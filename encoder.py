"""ESC/POS command encoder: maps print directives to device control bytes.

Pure functions only, no I/O. Concatenating ``encode()`` over a document in
order gives exactly the byte stream sent to the printer.
"""

from __future__ import annotations

from typing import Iterable

from escpos.constants import CTL_LF, ESC, GS

from directives import AlignCenter, AlignLeft, Bold, Cut, DoubleHeight, Newline, PrintDirective, Text

DEFAULT_ENCODING = "cp860"

# ESC @ - initialize (clears buffer, resets modes like power-on)
INITIALIZE = ESC + b"\x40"
# ESC t <n> - select character code table
SELECT_CODEPAGE = ESC + b"t"

ALIGN_LEFT = ESC + b"a\x00"
ALIGN_CENTER = ESC + b"a\x01"
BOLD_ON = ESC + b"E\x01"
BOLD_OFF = ESC + b"E\x00"
# GS ! <n> - character size; low nibble is the height multiplier
DOUBLE_HEIGHT_ON = GS + b"!\x01"
DOUBLE_HEIGHT_OFF = GS + b"!\x00"
NEW_LINE = CTL_LF
# GS V 0 - full cut
CUT = GS + b"V\x00"


class EncodingError(TypeError):
    """Raised for an object that is not a print directive (programming error)."""


def initialize_sequence(codepage_id: int) -> bytes:
    """Reset the device and select the code page used for text."""
    return INITIALIZE + SELECT_CODEPAGE + bytes((codepage_id,))


def encode(directive: PrintDirective, encoding: str = DEFAULT_ENCODING) -> bytes:
    if isinstance(directive, Text):
        # Characters missing from the device code page print as '?'
        return directive.text.encode(encoding, errors="replace")
    if isinstance(directive, Newline):
        return NEW_LINE
    if isinstance(directive, AlignCenter):
        return ALIGN_CENTER
    if isinstance(directive, AlignLeft):
        return ALIGN_LEFT
    if isinstance(directive, Bold):
        return BOLD_ON if directive.on else BOLD_OFF
    if isinstance(directive, DoubleHeight):
        return DOUBLE_HEIGHT_ON if directive.on else DOUBLE_HEIGHT_OFF
    if isinstance(directive, Cut):
        return CUT
    raise EncodingError(f"Unknown print directive: {directive!r}")


def encode_document(document: Iterable[PrintDirective], encoding: str = DEFAULT_ENCODING) -> bytes:
    return b"".join(encode(d, encoding) for d in document)
