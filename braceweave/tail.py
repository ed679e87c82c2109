from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

from .dialect import HostDialect
from .errors import MissingExpression
from .lexer import iter_structure, mask_opaque


@dataclass(frozen=True)
class StatementsOnly:
    statements: str


@dataclass(frozen=True)
class StatementsThenExpr:
    statements: str
    expr_text: str
    format_spec: str | None
    expr_offset: int = field(default=0, compare=False)
    spec_offset: int = field(default=0, compare=False)


TailClassification = Union[StatementsOnly, StatementsThenExpr]


def _is_compound_colon(text: str, index: int, dialect: HostDialect) -> bool:
    for token in dialect.compound_colon_tokens:
        for pos, ch in enumerate(token):
            if ch != ":":
                continue
            start = index - pos
            if start >= 0 and text[start : start + len(token)] == token:
                return True
    return False


def _is_label_colon(text: str, index: int, dialect: HostDialect) -> bool:
    """True for the colon of a loop label such as `'outer: loop { ... }`."""
    if not dialect.char_quote:
        return False
    label = re.escape(dialect.char_quote) + r"[A-Za-z_]\w*\s*\Z"
    return re.search(r"(?<![\w&])" + label, text[:index]) is not None


def split_statements(text: str, dialect: HostDialect) -> list[tuple[int, int]]:
    """Spans of top-level statements, each including its terminator; the tail span is last."""
    masked = mask_opaque(text, dialect)
    spans: list[tuple[int, int]] = []
    start = 0
    for index, ch, depth in iter_structure(masked):
        if ch == dialect.statement_terminator and depth == 0:
            spans.append((start, index + 1))
            start = index + 1
    spans.append((start, len(text)))
    return spans


def _leading_ws(text: str) -> int:
    return len(text) - len(text.lstrip())


def classify_code(text: str, dialect: HostDialect, base_offset: int = 0) -> TailClassification:
    """Classify a code block body as statements only, or statements plus a formatted tail.

    base_offset is the absolute offset of text within the template and is
    only used for error locations.
    """
    masked = mask_opaque(text, dialect)
    last_terminator = -1
    for index, ch, depth in iter_structure(masked):
        if ch == dialect.statement_terminator and depth == 0:
            last_terminator = index

    tail_start = last_terminator + 1
    statements = text[:tail_start]
    # comments never reach the generated expression, strings do
    visible = mask_opaque(text, dialect, keep_strings=True)
    if visible[tail_start:].strip() == "":
        return StatementsOnly(statements=statements if statements.strip() else "")

    colon = -1
    for index, ch, depth in iter_structure(masked[tail_start:]):
        if ch != ":" or depth != 0:
            continue
        at = tail_start + index
        if not _is_compound_colon(masked, at, dialect) and not _is_label_colon(masked, at, dialect):
            colon = at

    if colon == -1:
        expr_region = visible[tail_start:]
        return StatementsThenExpr(
            statements=statements,
            expr_text=expr_region.strip(),
            format_spec=None,
            expr_offset=base_offset + tail_start + _leading_ws(expr_region),
        )

    expr_region = visible[tail_start:colon]
    spec_region = visible[colon + 1 :]
    expr_text = expr_region.strip()
    if not expr_text:
        raise MissingExpression("format specifier has no expression to format", base_offset + colon)
    return StatementsThenExpr(
        statements=statements,
        expr_text=expr_text,
        format_spec=spec_region.strip(),
        expr_offset=base_offset + tail_start + _leading_ws(expr_region),
        spec_offset=base_offset + colon + 1 + _leading_ws(spec_region),
    )
