from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from .dialect import HostDialect
from .lexer import mask_opaque
from .scanner import CodeSegment, Segment
from .tail import StatementsThenExpr, TailClassification, split_statements

logger = logging.getLogger(__name__)

IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class BindingRequirement:
    """Free identifiers of one template, each with the offset of its first use."""

    names: tuple[tuple[str, int], ...]

    def name_set(self) -> set[str]:
        return {name for name, _ in self.names}

    def missing_from(self, available: Sequence[str]) -> list[tuple[str, int]]:
        known = set(available)
        return [(name, offset) for name, offset in self.names if name not in known]


def _bound_names(statement: str, dialect: HostDialect) -> set[str]:
    names: set[str] = set()
    for pattern in dialect.binding_patterns:
        for match in pattern.finditer(statement):
            names.update(IDENT_RE.findall(match.group("names")))
    return names - dialect.keywords


def _is_member(masked: str, start: int, dialect: HostDialect) -> bool:
    before = masked[:start].rstrip()
    return any(before.endswith(prefix) for prefix in dialect.member_prefixes)


def _skipped_by_follower(masked: str, end: int, dialect: HostDialect) -> bool:
    return any(pattern.match(masked, end) for pattern in dialect.skip_followers)


def _uses(masked: str, dialect: HostDialect) -> list[tuple[str, int]]:
    found: list[tuple[str, int]] = []
    for match in IDENT_RE.finditer(masked):
        name = match.group(0)
        start = match.start()
        if start > 0 and (masked[start - 1].isalnum() or masked[start - 1] == "_"):
            # numeric suffix such as 1u8 or 2e10
            continue
        if name in dialect.keywords or name in dialect.builtins or name in dialect.implicit_names:
            continue
        if dialect.ignore_capitalized and name[0].isupper():
            continue
        if _is_member(masked, start, dialect) or _skipped_by_follower(masked, match.end(), dialect):
            continue
        found.append((name, start))
    return found


def _segment_free_names(
    segment: CodeSegment, classification: TailClassification, dialect: HostDialect
) -> list[tuple[str, int]]:
    text = segment.text
    free: list[tuple[str, int]] = []
    bound: set[str] = set()
    spans = split_statements(classification.statements, dialect) if classification.statements else []
    for start, end in spans:
        statement = text[start:end]
        masked = mask_opaque(statement, dialect)
        if not masked.strip():
            continue
        local = _bound_names(masked, dialect)
        for name, offset in _uses(masked, dialect):
            if name not in bound and name not in local:
                free.append((name, segment.body_start + start + offset))
        bound |= local
    if isinstance(classification, StatementsThenExpr):
        masked = mask_opaque(classification.expr_text, dialect)
        # closures and comprehensions bind names inside the expression itself
        bound |= _bound_names(masked, dialect)
        for name, offset in _uses(masked, dialect):
            if name not in bound:
                free.append((name, classification.expr_offset + offset))
    return free


def collect_free_identifiers(
    segments: Sequence[Segment],
    classifications: Sequence[TailClassification],
    dialect: HostDialect,
) -> BindingRequirement:
    """Best-effort free names across all code segments; advisory only."""
    first_use: dict[str, int] = {}
    code_segments = [segment for segment in segments if isinstance(segment, CodeSegment)]
    for segment, classification in zip(code_segments, classifications):
        for name, offset in _segment_free_names(segment, classification, dialect):
            first_use.setdefault(name, offset)
    logger.debug("free identifiers: %s", ", ".join(sorted(first_use)) or "-")
    return BindingRequirement(names=tuple(sorted(first_use.items(), key=lambda item: (item[1], item[0]))))
