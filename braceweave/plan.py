from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Sequence, Union

from .format_spec import FormatSpec
from .scanner import CodeSegment, LiteralSegment, Segment
from .tail import StatementsThenExpr, TailClassification

FORMATTED_WRITE_ESTIMATE = 16


@dataclass(frozen=True)
class WriteLiteral:
    text: str
    offset: int

    def to_dict(self) -> dict[str, object]:
        return {"op": "write_literal", "text": self.text, "offset": self.offset}


@dataclass(frozen=True)
class RunStatements:
    code_text: str
    offset: int

    def to_dict(self) -> dict[str, object]:
        return {"op": "run_statements", "code": self.code_text, "offset": self.offset}


@dataclass(frozen=True)
class WriteFormatted:
    expr_text: str
    format_spec: FormatSpec | None
    offset: int

    def to_dict(self) -> dict[str, object]:
        spec = self.format_spec.to_dict() if self.format_spec is not None else None
        return {"op": "write_formatted", "expr": self.expr_text, "format_spec": spec, "offset": self.offset}


EmitOp = Union[WriteLiteral, RunStatements, WriteFormatted]


@dataclass(frozen=True)
class EmissionPlan:
    path: str
    ops: tuple[EmitOp, ...]

    @property
    def estimated_size(self) -> int:
        size = 0
        for op in self.ops:
            if isinstance(op, WriteLiteral):
                size += len(op.text.encode("utf-8"))
            elif isinstance(op, WriteFormatted):
                size += FORMATTED_WRITE_ESTIMATE
        return size

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "ops": [op.to_dict() for op in self.ops]}

    def digest(self) -> str:
        payload = json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"), sort_keys=True)
        return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_plan(
    path: str,
    segments: Sequence[Segment],
    classifications: Sequence[TailClassification],
    format_specs: Sequence[FormatSpec | None],
) -> EmissionPlan:
    """Lower segments to emission ops.

    classifications and format_specs hold one entry per code segment, in
    source order.
    """
    ops: list[EmitOp] = []
    code_index = 0
    for segment in segments:
        if isinstance(segment, LiteralSegment):
            ops.append(WriteLiteral(text=segment.text, offset=segment.start))
            continue
        assert isinstance(segment, CodeSegment)
        classification = classifications[code_index]
        spec = format_specs[code_index]
        code_index += 1
        if classification.statements.strip():
            ops.append(RunStatements(code_text=classification.statements, offset=segment.body_start))
        if isinstance(classification, StatementsThenExpr):
            ops.append(
                WriteFormatted(
                    expr_text=classification.expr_text,
                    format_spec=spec,
                    offset=classification.expr_offset,
                )
            )
    return EmissionPlan(path=path, ops=tuple(ops))
