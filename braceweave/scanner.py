from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .dialect import HostDialect
from .errors import UnbalancedBraces
from .lexer import skip_opaque
from .source import TemplateSource


@dataclass(frozen=True)
class LiteralSegment:
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class CodeSegment:
    text: str
    start: int
    end: int

    @property
    def body_start(self) -> int:
        return self.start + 1


Segment = Union[LiteralSegment, CodeSegment]


def _scan_code(text: str, open_index: int, dialect: HostDialect) -> int:
    """Return the index of the brace closing the block opened at open_index."""
    depth = 1
    index = open_index + 1
    while index < len(text):
        token = skip_opaque(text, index, dialect)
        if token is not None:
            index = token[0]
            continue
        ch = text[index]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    raise UnbalancedBraces(
        f"code block opened at offset {open_index} is never closed (depth {depth} at end of file)",
        len(text),
    )


def segment_template(source: TemplateSource, dialect: HostDialect) -> tuple[Segment, ...]:
    """Split template text into literal and code segments.

    `{{` and `}}` in literal text stand for a single brace; a lone `}` is
    kept as is. Segment spans partition the source exactly.
    """
    text = source.text
    segments: list[Segment] = []
    literal: list[str] = []
    literal_start = 0
    index = 0

    def flush_literal(end: int) -> None:
        if end > literal_start:
            segments.append(LiteralSegment(text="".join(literal), start=literal_start, end=end))
        literal.clear()

    while index < len(text):
        ch = text[index]
        if ch == "{" and text.startswith("{{", index):
            literal.append("{")
            index += 2
            continue
        if ch == "}" and text.startswith("}}", index):
            literal.append("}")
            index += 2
            continue
        if ch != "{":
            literal.append(ch)
            index += 1
            continue

        flush_literal(index)
        close_index = _scan_code(text, index, dialect)
        segments.append(CodeSegment(text=text[index + 1 : close_index], start=index, end=close_index + 1))
        index = close_index + 1
        literal_start = index

    flush_literal(len(text))
    if not segments:
        segments.append(LiteralSegment(text="", start=0, end=0))
    return tuple(segments)
