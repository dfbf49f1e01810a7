"""Print directives: abstract formatting commands that make up a document.

A document is an ordered, immutable tuple of directives. Directive order is
significant end-to-end: bold/align/size toggles are stateful on the device,
so the encoder and the job runner must never reorder, merge or drop them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Newline:
    pass


@dataclass(frozen=True)
class AlignCenter:
    pass


@dataclass(frozen=True)
class AlignLeft:
    pass


@dataclass(frozen=True)
class Bold:
    on: bool


@dataclass(frozen=True)
class DoubleHeight:
    on: bool


@dataclass(frozen=True)
class Cut:
    pass


PrintDirective = Union[Text, Newline, AlignCenter, AlignLeft, Bold, DoubleHeight, Cut]
Document = Tuple[PrintDirective, ...]


class DocumentBuilder:
    """Accumulate directives and freeze them into a Document."""

    def __init__(self) -> None:
        self._items: List[PrintDirective] = []

    def add(self, *directives: PrintDirective) -> "DocumentBuilder":
        self._items.extend(directives)
        return self

    def text(self, text: str) -> "DocumentBuilder":
        if text:
            self._items.append(Text(text))
        return self

    def line(self, text: str = "") -> "DocumentBuilder":
        """Text followed by a line feed; an empty line is a bare feed."""
        self.text(text)
        self._items.append(Newline())
        return self

    def feed(self, lines: int) -> "DocumentBuilder":
        for _ in range(lines):
            self._items.append(Newline())
        return self

    def build(self) -> Document:
        return tuple(self._items)
