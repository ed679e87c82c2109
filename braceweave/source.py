from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from hashlib import sha256
from pathlib import Path

from .errors import E_TEMPLATE_NOT_FOUND, E_TEMPLATE_NOT_UTF8, CompileError, Diagnostic


def _normalize_text(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


@dataclass(frozen=True)
class TemplateSource:
    path: str
    text: str
    _line_starts: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        starts = [0]
        for index, ch in enumerate(self.text):
            if ch == "\n":
                starts.append(index + 1)
        object.__setattr__(self, "_line_starts", tuple(starts))

    @property
    def fingerprint(self) -> str:
        digest = sha256(_normalize_text(self.text).encode("utf-8")).hexdigest()
        return f"sha256:{digest}"

    def locate(self, offset: int) -> tuple[int, int, int]:
        """Map a character offset to (utf-8 byte offset, 1-based line, 1-based col)."""
        offset = max(0, min(offset, len(self.text)))
        line_index = bisect_right(self._line_starts, offset) - 1
        col = offset - self._line_starts[line_index] + 1
        byte_offset = len(self.text[:offset].encode("utf-8"))
        return byte_offset, line_index + 1, col

    def line_text(self, line: int) -> str:
        start = self._line_starts[line - 1]
        end = self.text.find("\n", start)
        if end == -1:
            end = len(self.text)
        return self.text[start:end].rstrip("\r")

    def diagnostic(self, code: str, message: str, offset: int, severity: str = "error") -> Diagnostic:
        byte_offset, line, col = self.locate(offset)
        return Diagnostic(
            code=code,
            severity=severity,
            message=message,
            path=self.path,
            offset=byte_offset,
            line=line,
            col=col,
            excerpt=self.line_text(line),
        )


def _missing(path: Path, code: str, message: str) -> CompileError:
    return CompileError(
        Diagnostic(code=code, severity="error", message=message, path=str(path), offset=0, line=1, col=1)
    )


def load_source(path: Path) -> TemplateSource:
    if not path.exists() or not path.is_file():
        raise _missing(path, E_TEMPLATE_NOT_FOUND, f"template not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise _missing(path, E_TEMPLATE_NOT_UTF8, f"template is not valid UTF-8: {exc}") from exc
    return TemplateSource(path=str(path), text=text)
