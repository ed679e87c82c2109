import io
from pathlib import Path

import pytest

from braceweave.compiler import compile_source
from braceweave.dialect import PYTHON
from braceweave.python_writer import INLINE_FUNCTION, write_inline_routine
from braceweave.runtime import load_routine
from braceweave.source import TemplateSource


# Common test fixtures
@pytest.fixture
def write_template(tmp_path: Path):
    """Return a helper that writes template text under tmp_path."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def render_python():
    """Compile template text with the python dialect and run it against scope."""

    def _render(text: str, **scope) -> str:
        compiled = compile_source(TemplateSource(path="inline.tmpl", text=text), PYTHON)
        routine = load_routine(write_inline_routine(compiled.plan), INLINE_FUNCTION, dict(scope))
        buffer = io.StringIO()
        routine(buffer)
        return buffer.getvalue()

    return _render
