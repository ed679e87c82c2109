from __future__ import annotations

import textwrap
from typing import Sequence

from .dialect import PYTHON, HostDialect
from .format_spec import FormatSpec
from .lexer import mask_opaque
from .plan import EmissionPlan, RunStatements, WriteFormatted, WriteLiteral

INDENT_UNIT = "    "
INLINE_FUNCTION = "_braceweave_inline"
RUNTIME_IMPORTS = (
    "from braceweave.runtime import guard_sink as _bw_guard_sink",
    "from braceweave.runtime import write_formatted as _bw_write_formatted",
    "from braceweave.runtime import write_literal as _bw_write_literal",
)


def python_format(spec: FormatSpec | None) -> tuple[str, str]:
    """Translate a validated spec into (format() spec string, representation mode)."""
    if spec is None:
        return "", "display"
    mode = "display"
    if spec.is_debug:
        mode = "pretty" if spec.is_pretty else "debug"
    parts: list[str] = []
    if spec.align is not None:
        parts.append((spec.fill or "") + spec.align)
    if spec.sign is not None and mode == "display":
        parts.append(spec.sign)
    if spec.alternate and mode == "display":
        parts.append("#")
    if spec.zero:
        parts.append("0")
    if spec.width is not None:
        parts.append(str(spec.width))
    if spec.precision is not None:
        parts.append(f".{spec.precision}")
    if mode == "display":
        parts.append(spec.type_flag)
    return "".join(parts), mode


def statement_lines(code: str, dialect: HostDialect = PYTHON) -> list[str]:
    """Normalize a statements block to column-zero Python lines.

    The first line may follow the opening brace directly; a first line
    ending in ':' owns the indented lines after it.
    """
    head, _, rest = code.partition("\n")
    lines: list[str] = []
    head = head.strip()
    if head:
        lines.append(head)
    body = textwrap.dedent(rest).strip("\n")
    if not body.strip():
        return lines
    body_lines = [line.rstrip() for line in body.splitlines()]
    if head and mask_opaque(head, dialect).rstrip().endswith(":"):
        body_lines = [INDENT_UNIT + line if line else line for line in body_lines]
    lines.extend(body_lines)
    return lines


def _plan_lines(plan: EmissionPlan, dialect: HostDialect) -> list[str]:
    lines: list[str] = []
    for op in plan.ops:
        if isinstance(op, WriteLiteral):
            if op.text:
                lines.append(f"_bw_write_literal(sink, {op.text!r})")
        elif isinstance(op, RunStatements):
            lines.extend(statement_lines(op.code_text, dialect))
        elif isinstance(op, WriteFormatted):
            spec, mode = python_format(op.format_spec)
            lines.append(f"_bw_write_formatted(sink, ({op.expr_text}), {spec!r}, {mode!r})")
    return lines


def _module(plan: EmissionPlan, signature: str, prologue: list[str], dialect: HostDialect) -> str:
    # statements that write to sink directly go through the same error channel
    body = ["sink = _bw_guard_sink(sink)"] + prologue + _plan_lines(plan, dialect)
    lines = [f"# Generated by braceweave from {plan.path}; do not edit."]
    lines.extend(RUNTIME_IMPORTS)
    lines.append("")
    lines.append("")
    lines.append(f"def {signature}:")
    lines.extend(INDENT_UNIT + line if line else "" for line in body)
    return "\n".join(lines) + "\n"


def write_record_routine(
    plan: EmissionPlan,
    function_name: str,
    bindings: Sequence[tuple[str, str]],
    dialect: HostDialect = PYTHON,
) -> str:
    """Render `def <function_name>(self, sink)` with the bound fields as locals."""
    prologue: list[str] = []
    for name, type_text in bindings:
        if type_text.strip():
            prologue.append(f"{name}: {type_text.strip()!r} = self.{name}")
        else:
            prologue.append(f"{name} = self.{name}")
    return _module(plan, f"{function_name}(self, sink)", prologue, dialect)


def write_inline_routine(plan: EmissionPlan, dialect: HostDialect = PYTHON) -> str:
    """Render a sink-writing function meant to run with the caller's bindings as globals."""
    return _module(plan, f"{INLINE_FUNCTION}(sink)", [], dialect)
