"""Helpers used by routines generated for the Python dialect.

Generated code wraps its sink with `guard_sink` and writes through
`write_literal` and `write_formatted`, so every sink failure, including one
raised by a statement writing to the sink itself, surfaces as a single
`HostEmissionError`.

The remaining functions load generated routines: `attach_template` binds a
template to a class through an explicit field list, `render_inline` runs a
template against the caller's own bindings.
"""

from __future__ import annotations

import io
import logging
import pprint
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TextIO

from .compiler import InlineRequest, PlanCache, RecordRequest, generate_inline_routine, generate_record_routine
from .config import CompilerConfig, default_config
from .errors import HostEmissionError
from .python_writer import INLINE_FUNCTION

logger = logging.getLogger(__name__)

_PLAN_CACHE = PlanCache()


def _write(sink: TextIO, text: str) -> None:
    try:
        sink.write(text)
    except HostEmissionError:
        raise
    except Exception as exc:
        raise HostEmissionError(f"output sink failed: {exc}") from exc


class GuardedSink:
    """Sink proxy whose writes fail with HostEmissionError only."""

    def __init__(self, sink: TextIO) -> None:
        self.sink = sink

    def write(self, text: str) -> int:
        _write(self.sink, text)
        return len(text)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.sink, name)


def guard_sink(sink: TextIO | GuardedSink) -> GuardedSink:
    if isinstance(sink, GuardedSink):
        return sink
    return GuardedSink(sink)


def write_literal(sink: TextIO, text: str) -> None:
    _write(sink, text)


def write_formatted(sink: TextIO, value: Any, spec: str, mode: str) -> None:
    if mode == "debug":
        text = format(repr(value), spec)
    elif mode == "pretty":
        text = format(pprint.pformat(value), spec)
    else:
        text = format(value, spec)
    _write(sink, text)


def load_routine(text: str, name: str, namespace: dict[str, Any] | None = None, origin: str = "template") -> Callable:
    """Execute generated module text and return the routine it defines."""
    namespace = {} if namespace is None else namespace
    code = compile(text, f"<braceweave:{origin}>", "exec")
    exec(code, namespace)
    return namespace[name]


def _normalize_bindings(bindings: Sequence[str | tuple[str, str]]) -> tuple[tuple[str, str], ...]:
    out: list[tuple[str, str]] = []
    for item in bindings:
        if isinstance(item, str):
            out.append((item, ""))
        else:
            out.append((item[0], item[1]))
    return tuple(out)


def attach_template(
    cls: type,
    template_path: str | Path,
    bindings: Sequence[str | tuple[str, str]],
    *,
    method: str = "__str__",
    config: CompilerConfig | None = None,
    cache: PlanCache | None = _PLAN_CACHE,
) -> type:
    """Install `method` on cls so that it renders the template with the listed fields in scope."""
    config = config or default_config("python")
    function_name = f"_render_{cls.__name__}"
    request = RecordRequest(
        type_name=cls.__name__,
        bindings=_normalize_bindings(bindings),
        template_path=Path(template_path),
        function_name=function_name,
    )
    generated = generate_record_routine(request, config, cache)
    routine = load_routine(generated.text, function_name, {"__name__": cls.__module__}, str(template_path))

    def render(self: Any) -> str:
        buffer = io.StringIO()
        routine(self, buffer)
        return buffer.getvalue()

    render.__name__ = method
    render.__qualname__ = f"{cls.__qualname__}.{method}"
    setattr(cls, method, render)
    setattr(cls, "render_into", lambda self, sink: routine(self, sink))
    logger.debug("attached %s to %s.%s", template_path, cls.__qualname__, method)
    return cls


def template(
    template_path: str | Path,
    bindings: Sequence[str | tuple[str, str]],
    *,
    method: str = "__str__",
    config: CompilerConfig | None = None,
) -> Callable[[type], type]:
    """Class decorator form of attach_template."""

    def decorate(cls: type) -> type:
        return attach_template(cls, template_path, bindings, method=method, config=config)

    return decorate


def _inline_routine(
    template_path: str | Path,
    namespace: dict[str, Any],
    config: CompilerConfig | None,
    cache: PlanCache | None,
) -> Callable:
    config = config or default_config("python")
    request = InlineRequest(template_path=Path(template_path), known_names=tuple(namespace))
    generated = generate_inline_routine(request, config, cache)
    return load_routine(generated.text, INLINE_FUNCTION, namespace, str(template_path))


def _caller_namespace(scope: Mapping[str, Any] | None, depth: int) -> dict[str, Any]:
    if scope is not None:
        return dict(scope)
    frame = sys._getframe(depth + 1)
    try:
        namespace = dict(frame.f_globals)
        namespace.update(frame.f_locals)
    finally:
        del frame
    return namespace


def emit_inline(
    template_path: str | Path,
    sink: TextIO,
    scope: Mapping[str, Any] | None = None,
    *,
    config: CompilerConfig | None = None,
    cache: PlanCache | None = _PLAN_CACHE,
) -> None:
    """Write the template to sink, resolving free names against the caller's bindings."""
    namespace = _caller_namespace(scope, 1)
    _inline_routine(template_path, namespace, config, cache)(sink)


def render_inline(
    template_path: str | Path,
    scope: Mapping[str, Any] | None = None,
    *,
    config: CompilerConfig | None = None,
    cache: PlanCache | None = _PLAN_CACHE,
) -> str:
    namespace = _caller_namespace(scope, 1)
    buffer = io.StringIO()
    _inline_routine(template_path, namespace, config, cache)(buffer)
    return buffer.getvalue()
