from __future__ import annotations

from dataclasses import dataclass


E_UNBALANCED_BRACES = "E_UNBALANCED_BRACES"
E_UNTERMINATED_LITERAL = "E_UNTERMINATED_LITERAL"
E_UNTERMINATED_COMMENT = "E_UNTERMINATED_COMMENT"
E_FORMAT_SPEC_INVALID = "E_FORMAT_SPEC_INVALID"
E_MISSING_EXPRESSION = "E_MISSING_EXPRESSION"
E_TEMPLATE_NOT_FOUND = "E_TEMPLATE_NOT_FOUND"
E_TEMPLATE_NOT_UTF8 = "E_TEMPLATE_NOT_UTF8"
W_UNBOUND_IDENTIFIER = "W_UNBOUND_IDENTIFIER"


@dataclass(frozen=True)
class Diagnostic:
    code: str
    severity: str
    message: str
    path: str
    offset: int
    line: int
    col: int
    excerpt: str = ""

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "severity": self.severity,
            "message": self.message,
            "path": self.path,
            "offset": self.offset,
            "line": self.line,
            "col": self.col,
        }

    def render(self) -> str:
        head = f"{self.path}:{self.line}:{self.col}: {self.severity}[{self.code}]: {self.message}"
        if not self.excerpt:
            return head
        pointer = " " * (self.col - 1) + "^"
        return f"{head}\n  {self.excerpt}\n  {pointer}"


class TemplateError(Exception):
    """A compile-time failure at a character offset of the template text."""

    code = "E_TEMPLATE"

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{self.code}: {message}")
        self.message = message
        self.offset = offset


class ParseError(TemplateError):
    code = "E_PARSE"


class UnbalancedBraces(ParseError):
    code = E_UNBALANCED_BRACES


class UnterminatedLiteral(ParseError):
    code = E_UNTERMINATED_LITERAL


class UnterminatedComment(ParseError):
    code = E_UNTERMINATED_COMMENT


class FormatSpecError(TemplateError):
    code = E_FORMAT_SPEC_INVALID

    def __init__(self, reason: str, offset: int = 0) -> None:
        super().__init__(f"invalid format specifier: {reason}", offset)
        self.reason = reason


class MissingExpression(TemplateError):
    code = E_MISSING_EXPRESSION


class CompileError(Exception):
    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(f"{diagnostic.code}: {diagnostic.message}")
        self.diagnostic = diagnostic


class HostEmissionError(Exception):
    """The output sink of a generated routine failed; remaining output is abandoned."""
