from __future__ import annotations

import re
from typing import Iterator

from .dialect import HostDialect
from .errors import UnterminatedComment, UnterminatedLiteral

STRING = "string"
CHAR = "char"
COMMENT = "comment"

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}


def _is_spec_flag(text: str, index: int, marker: str, dialect: HostDialect) -> bool:
    """A marker right after `:` that runs to the closing brace is format-spec text, not a comment."""
    if marker not in dialect.spec_comment_markers or index == 0 or text[index - 1] != ":":
        return False
    return re.match(re.escape(marker) + r"[^\s{}]*\s*(?:\}|\Z)", text[index:]) is not None


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _string_prefix(text: str, index: int, dialect: HostDialect) -> tuple[int, bool]:
    """Return (length of a string prefix starting at index, is_raw)."""
    if index > 0 and _is_ident_char(text[index - 1]):
        return 0, False
    for prefix in dialect.string_prefixes:
        end = index + len(prefix)
        if text[index:end].lower() != prefix:
            continue
        if end < len(text) and (text[end] in dialect.string_quotes or (dialect.raw_string_hashes and text[end] in "r")):
            return len(prefix), "r" in prefix
    return 0, False


def _scan_quoted(text: str, start: int, body: int, quote: str, dialect: HostDialect, raw: bool) -> int:
    index = body
    multiline = dialect.multiline_strings or len(quote) == 3
    while index < len(text):
        if text.startswith(quote, index):
            return index + len(quote)
        ch = text[index]
        if ch == "\\" and not (raw and dialect.raw_string_hashes):
            index += 2
            continue
        if ch == "\n" and not multiline:
            raise UnterminatedLiteral("string literal is not closed before end of line", start)
        index += 1
    raise UnterminatedLiteral("string literal is never closed", start)


def _scan_hashed_raw(text: str, start: int, index: int) -> int | None:
    """Rust-style r#"..."# starting at the 'r'; None when it is a raw identifier."""
    hashes = 0
    cursor = index + 1
    while cursor < len(text) and text[cursor] == "#":
        hashes += 1
        cursor += 1
    if cursor >= len(text) or text[cursor] != '"':
        return None
    closing = '"' + "#" * hashes
    end = text.find(closing, cursor + 1)
    if end == -1:
        raise UnterminatedLiteral("raw string literal is never closed", start)
    return end + len(closing)


def _scan_char(text: str, start: int, dialect: HostDialect) -> int | None:
    quote = dialect.char_quote
    if start + 1 >= len(text):
        return None
    if text[start + 1] == "\\":
        index = start + 3
        while index < len(text) and text[index] != quote:
            if text[index] == "\n":
                break
            index += 1
        if index >= len(text) or text[index] != quote:
            raise UnterminatedLiteral("character literal is never closed", start)
        return index + 1
    if start + 2 < len(text) and text[start + 2] == quote and text[start + 1] != "\n":
        return start + 3
    # lifetime or loop label
    return None


def _scan_block_comment(text: str, start: int, dialect: HostDialect) -> int:
    opener, closer = dialect.block_comment  # type: ignore[misc]
    depth = 1
    index = start + len(opener)
    while index < len(text):
        if dialect.nested_block_comments and text.startswith(opener, index):
            depth += 1
            index += len(opener)
            continue
        if text.startswith(closer, index):
            depth -= 1
            index += len(closer)
            if depth == 0:
                return index
            continue
        index += 1
    raise UnterminatedComment("block comment is never closed", start)


def skip_opaque(text: str, index: int, dialect: HostDialect) -> tuple[int, str] | None:
    """If a string, char or comment token starts at index, return (end, kind)."""
    ch = text[index]

    for marker in dialect.line_comments:
        if text.startswith(marker, index) and not _is_spec_flag(text, index, marker, dialect):
            end = text.find("\n", index)
            return (len(text) if end == -1 else end), COMMENT
    if dialect.block_comment and text.startswith(dialect.block_comment[0], index):
        return _scan_block_comment(text, index, dialect), COMMENT

    prefix_len, raw = _string_prefix(text, index, dialect)
    body = index + prefix_len
    if body < len(text) and dialect.raw_string_hashes and text[body] == "r" and (
        prefix_len > 0 or index == 0 or not _is_ident_char(text[index - 1])
    ):
        end = _scan_hashed_raw(text, index, body)
        if end is not None:
            return end, STRING
    if body < len(text) and text[body] in dialect.string_quotes:
        quote = text[body]
        if dialect.triple_quoted_strings and text.startswith(quote * 3, body):
            quote = quote * 3
        return _scan_quoted(text, index, body + len(quote), quote, dialect, raw), STRING

    if dialect.char_quote and ch == dialect.char_quote:
        end = _scan_char(text, index, dialect)
        if end is not None:
            return end, CHAR
    return None


def mask_opaque(text: str, dialect: HostDialect, *, keep_strings: bool = False) -> str:
    """Blank out comments (and strings unless keep_strings) keeping offsets and newlines."""
    out: list[str] = []
    index = 0
    while index < len(text):
        token = skip_opaque(text, index, dialect)
        if token is None:
            out.append(text[index])
            index += 1
            continue
        end, kind = token
        chunk = text[index:end]
        if keep_strings and kind != COMMENT:
            out.append(chunk)
        else:
            out.append("".join("\n" if c == "\n" else " " for c in chunk))
        index = end
    return "".join(out)


def iter_structure(masked: str) -> Iterator[tuple[int, str, int]]:
    """Yield (index, char, depth) over masked text; depth counts (), [] and {}.

    Openers report the depth outside them; closers report the depth after
    closing. Depth never goes below zero.
    """
    depth = 0
    for index, ch in enumerate(masked):
        if ch in OPENERS:
            yield index, ch, depth
            depth += 1
        elif ch in CLOSERS:
            if depth > 0:
                depth -= 1
            yield index, ch, depth
        else:
            yield index, ch, depth
