from __future__ import annotations

from typing import Sequence

from .plan import EmissionPlan, RunStatements, WriteFormatted, WriteLiteral

INDENT_UNIT = "    "
OUT_VAR = "__braceweave_out"
RESULT_VAR = "__braceweave_result"


def rust_string_literal(text: str) -> str:
    out = ['"']
    for ch in text:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\0":
            out.append("\\0")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _format_string(op: WriteFormatted) -> str:
    if op.format_spec is None:
        return "{}"
    return "{:" + op.format_spec.raw + "}"


def _plan_lines(plan: EmissionPlan, indent: str) -> list[str]:
    lines: list[str] = []
    for op in plan.ops:
        if isinstance(op, WriteLiteral):
            if op.text:
                lines.append(f"{indent}f.write_str({rust_string_literal(op.text)})?;")
        elif isinstance(op, RunStatements):
            # continuation lines keep their authored layout so raw strings survive
            lines.append(indent + op.code_text.strip())
        elif isinstance(op, WriteFormatted):
            fmt = rust_string_literal(_format_string(op))
            lines.append(f"{indent}f.write_fmt(::core::format_args!({fmt}, {op.expr_text}))?;")
    return lines


def _header(plan: EmissionPlan) -> str:
    return f"// Generated by braceweave from {plan.path}; do not edit."


def _include_line(include_path: str | None, indent: str) -> list[str]:
    if not include_path:
        return []
    return [f"{indent}const _: &[u8] = ::core::include_bytes!({rust_string_literal(include_path)});"]


def write_record_routine(
    plan: EmissionPlan,
    type_name: str,
    bindings: Sequence[tuple[str, str]],
    *,
    impl_generics: str = "",
    where_clause: str = "",
    include_path: str | None = None,
) -> str:
    """Render a `Display` impl whose body sees the record fields as locals, plus a pre-sized `render()`."""
    body_indent = INDENT_UNIT * 2
    where = f" {where_clause.strip()}" if where_clause.strip() else ""
    lines = [
        _header(plan),
        f"impl{impl_generics} ::core::fmt::Display for {type_name}{where} {{",
        f"{INDENT_UNIT}fn fmt(&self, f: &mut ::core::fmt::Formatter<'_>) -> ::core::fmt::Result {{",
    ]
    lines.extend(_include_line(include_path, body_indent))
    for name, type_text in bindings:
        if type_text.strip():
            lines.append(f"{body_indent}let {name}: &{type_text.strip()} = &self.{name};")
        else:
            lines.append(f"{body_indent}let {name} = &self.{name};")
    lines.extend(_plan_lines(plan, body_indent))
    lines.append(f"{body_indent}::core::result::Result::Ok(())")
    lines.append(f"{INDENT_UNIT}}}")
    lines.append("}")
    lines.append("")
    lines.append(f"impl{impl_generics} {type_name}{where} {{")
    lines.append(f"{INDENT_UNIT}pub const ESTIMATED_SIZE: usize = {plan.estimated_size};")
    lines.append("")
    lines.append(
        f"{INDENT_UNIT}pub fn render(&self) -> ::core::result::Result<::std::string::String, ::core::fmt::Error> {{"
    )
    lines.append(f"{body_indent}let mut out = ::std::string::String::with_capacity(Self::ESTIMATED_SIZE);")
    lines.append(f"{body_indent}::core::fmt::Write::write_fmt(&mut out, ::core::format_args!(\"{{}}\", self))?;")
    lines.append(f"{body_indent}::core::result::Result::Ok(out)")
    lines.append(f"{INDENT_UNIT}}}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def write_inline_routine(plan: EmissionPlan, *, include_path: str | None = None) -> str:
    """Render a block expression evaluating to `Result<String, fmt::Error>` at the call site."""
    closure_indent = INDENT_UNIT * 2
    lines = [
        _header(plan),
        "{",
    ]
    lines.extend(_include_line(include_path, INDENT_UNIT))
    lines.extend(
        [
            f"{INDENT_UNIT}let mut {OUT_VAR} = ::std::string::String::with_capacity({plan.estimated_size});",
            f"{INDENT_UNIT}let {RESULT_VAR}: ::core::result::Result<(), ::core::fmt::Error> = (|| {{",
            f"{closure_indent}use ::core::fmt::Write as _;",
            f"{closure_indent}let f = &mut {OUT_VAR};",
        ]
    )
    lines.extend(_plan_lines(plan, closure_indent))
    lines.append(f"{closure_indent}::core::result::Result::Ok(())")
    lines.append(f"{INDENT_UNIT}}})();")
    lines.append(f"{INDENT_UNIT}{RESULT_VAR}.map(|()| {OUT_VAR})")
    lines.append("}")
    return "\n".join(lines) + "\n"
