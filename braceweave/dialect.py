from __future__ import annotations

import builtins
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class DialectError(RuntimeError):
    pass


@dataclass(frozen=True)
class HostDialect:
    """Lexical profile of the host language embedded in code blocks.

    Only token boundaries are described here; the host grammar itself is
    never parsed.
    """

    name: str
    writer: str
    string_quotes: tuple[str, ...]
    string_prefixes: tuple[str, ...]
    triple_quoted_strings: bool
    multiline_strings: bool
    raw_string_hashes: bool
    char_quote: str | None
    line_comments: tuple[str, ...]
    block_comment: tuple[str, str] | None
    nested_block_comments: bool
    statement_terminator: str
    compound_colon_tokens: tuple[str, ...]
    type_flags: frozenset[str]
    keywords: frozenset[str]
    builtins: frozenset[str]
    implicit_names: frozenset[str]
    member_prefixes: tuple[str, ...]
    skip_followers: tuple[re.Pattern[str], ...]
    binding_patterns: tuple[re.Pattern[str], ...]
    ignore_capitalized: bool
    spec_comment_markers: tuple[str, ...]
    debug_accepts_sign: bool


RUST_RAW: dict[str, Any] = {
    "name": "rust",
    "writer": "rust",
    "strings": {
        "quotes": ['"'],
        "prefixes": ["b", "c"],
        "triple_quoted": False,
        "multiline": True,
        "raw_hashes": True,
        "char_quote": "'",
    },
    "comments": {"line": ["//"], "block": ["/*", "*/"], "nested": True},
    "statement_terminator": ";",
    "compound_colon_tokens": ["::"],
    "type_flags": ["", "?", "x?", "X?", "x", "X", "o", "b", "e", "E", "p"],
    "keywords": [
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else",
        "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
        "match", "mod", "move", "mut", "pub", "ref", "return", "static", "struct",
        "super", "trait", "true", "type", "unsafe", "use", "where", "while", "yield",
    ],
    "builtins": [
        "bool", "char", "str", "u8", "u16", "u32", "u64", "u128", "usize",
        "i8", "i16", "i32", "i64", "i128", "isize", "f32", "f64",
        "drop", "std", "core", "alloc",
    ],
    "implicit_names": ["self", "Self", "f"],
    "member_prefixes": [".", "::"],
    "skip_followers": [r"\s*!", r"::", r"\s*:(?!:)"],
    "binding_patterns": [
        r"\blet\s+(?P<names>[^=:;]+)",
        r"\bfor\s+(?P<names>[^;{]+?)\s+in\b",
        r"\|(?P<names>[^|]*)\|",
        r"\((?P<names>\s*[a-z_]\w*\s*)\)\s*=>",
    ],
    "ignore_capitalized": True,
    "debug_accepts_sign": True,
}

PYTHON_RAW: dict[str, Any] = {
    "name": "python",
    "writer": "python",
    "strings": {
        "quotes": ['"', "'"],
        "prefixes": ["r", "u", "b", "f", "br", "rb", "fr", "rf"],
        "triple_quoted": True,
        "multiline": False,
        "raw_hashes": False,
        "char_quote": None,
    },
    "comments": {"line": ["#"], "block": None, "nested": False},
    "statement_terminator": ";",
    "compound_colon_tokens": [":="],
    "type_flags": ["", "?", "x", "X", "o", "b", "e", "E"],
    "keywords": [
        "False", "None", "True", "and", "as", "assert", "async", "await", "break",
        "class", "continue", "def", "del", "elif", "else", "except", "finally", "for",
        "from", "global", "if", "import", "in", "is", "lambda", "nonlocal", "not",
        "or", "pass", "raise", "return", "try", "while", "with", "yield",
    ],
    "builtins": sorted(name for name in dir(builtins) if not name.startswith("_")),
    "implicit_names": ["self", "sink"],
    "member_prefixes": ["."],
    "skip_followers": [r"\s*=(?!=)"],
    "binding_patterns": [
        r"^\s*(?P<names>[A-Za-z_][\w\s,]*?)\s*(?::[^=]+)?=(?!=)",
        r"\bfor\s+(?P<names>[\w\s,()]+?)\s+in\b",
        r"\bimport\s+(?P<names>[\w\s,.]+)",
        r"\bas\s+(?P<names>[A-Za-z_]\w*)",
        r"\bdef\s+(?P<names>[A-Za-z_]\w*)",
        r"\blambda\s*(?P<names>[^:]*):",
        r"(?P<names>[A-Za-z_]\w*)\s*:=",
    ],
    "ignore_capitalized": False,
    # `v:#?` and `v:#x` put the alternate flag right after the spec colon
    "spec_comment_markers": ["#"],
    "debug_accepts_sign": False,
}


def _str_list(raw: dict[str, Any], key: str, origin: str) -> list[str]:
    value = raw.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise DialectError(f"DIALECT_FIELD_INVALID: {origin}: {key} must be a list of strings")
    return value


def _compile_patterns(patterns: list[str], key: str, origin: str) -> tuple[re.Pattern[str], ...]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise DialectError(f"DIALECT_PATTERN_INVALID: {origin}: {key}: {exc}") from exc
    return tuple(compiled)


def dialect_from_dict(raw: dict[str, Any], origin: str = "<builtin>") -> HostDialect:
    if not isinstance(raw, dict):
        raise DialectError(f"DIALECT_NOT_OBJECT: {origin}")
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise DialectError(f"DIALECT_NAME_MISSING: {origin}")
    writer = raw.get("writer", name)
    if writer not in ("rust", "python"):
        raise DialectError(f"DIALECT_WRITER_UNKNOWN: {origin}: {writer}")

    strings = raw.get("strings", {})
    comments = raw.get("comments", {})
    block = comments.get("block")
    if block is not None and (
        not isinstance(block, list) or len(block) != 2 or not all(isinstance(b, str) and b for b in block)
    ):
        raise DialectError(f"DIALECT_FIELD_INVALID: {origin}: comments.block must be [open, close]")
    char_quote = strings.get("char_quote")
    if char_quote is not None and (not isinstance(char_quote, str) or len(char_quote) != 1):
        raise DialectError(f"DIALECT_FIELD_INVALID: {origin}: strings.char_quote must be one character")

    terminator = raw.get("statement_terminator", ";")
    if not isinstance(terminator, str) or len(terminator) != 1:
        raise DialectError(f"DIALECT_FIELD_INVALID: {origin}: statement_terminator must be one character")

    colon_tokens = _str_list(raw, "compound_colon_tokens", origin)
    for token in colon_tokens:
        if ":" not in token or token == ":":
            raise DialectError(f"DIALECT_FIELD_INVALID: {origin}: compound colon token {token!r}")

    line_comments = comments.get("line", [])
    for marker in _str_list(raw, "spec_comment_markers", origin):
        if marker not in line_comments:
            raise DialectError(f"DIALECT_FIELD_INVALID: {origin}: spec comment marker {marker!r} is not a line comment")

    return HostDialect(
        name=name,
        writer=writer,
        string_quotes=tuple(strings.get("quotes", ['"'])),
        string_prefixes=tuple(sorted(strings.get("prefixes", []), key=len, reverse=True)),
        triple_quoted_strings=bool(strings.get("triple_quoted", False)),
        multiline_strings=bool(strings.get("multiline", True)),
        raw_string_hashes=bool(strings.get("raw_hashes", False)),
        char_quote=char_quote,
        line_comments=tuple(line_comments),
        block_comment=(block[0], block[1]) if block else None,
        nested_block_comments=bool(comments.get("nested", False)),
        statement_terminator=terminator,
        compound_colon_tokens=tuple(colon_tokens),
        type_flags=frozenset(_str_list(raw, "type_flags", origin)) | {""},
        keywords=frozenset(_str_list(raw, "keywords", origin)),
        builtins=frozenset(_str_list(raw, "builtins", origin)),
        implicit_names=frozenset(_str_list(raw, "implicit_names", origin)),
        member_prefixes=tuple(_str_list(raw, "member_prefixes", origin)),
        skip_followers=_compile_patterns(_str_list(raw, "skip_followers", origin), "skip_followers", origin),
        binding_patterns=_compile_patterns(
            _str_list(raw, "binding_patterns", origin), "binding_patterns", origin
        ),
        ignore_capitalized=bool(raw.get("ignore_capitalized", False)),
        spec_comment_markers=tuple(_str_list(raw, "spec_comment_markers", origin)),
        debug_accepts_sign=bool(raw.get("debug_accepts_sign", True)),
    )


RUST = dialect_from_dict(RUST_RAW)
PYTHON = dialect_from_dict(PYTHON_RAW)
BUILTIN_DIALECTS = {RUST.name: RUST, PYTHON.name: PYTHON}


def load_dialect(path: Path) -> HostDialect:
    if not path.exists():
        raise DialectError(f"DIALECT_NOT_FOUND: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DialectError(f"DIALECT_INVALID_JSON: {path}: {exc}") from exc
    return dialect_from_dict(raw, str(path))


def resolve_dialect(name_or_path: str | HostDialect) -> HostDialect:
    if isinstance(name_or_path, HostDialect):
        return name_or_path
    if name_or_path in BUILTIN_DIALECTS:
        return BUILTIN_DIALECTS[name_or_path]
    if name_or_path.endswith(".json"):
        return load_dialect(Path(name_or_path))
    raise DialectError(f"DIALECT_UNKNOWN: {name_or_path}")
