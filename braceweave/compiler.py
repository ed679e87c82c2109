from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Sequence

from . import python_writer, rust_writer
from .bindings import BindingRequirement, collect_free_identifiers
from .config import CompilerConfig
from .dialect import HostDialect
from .errors import W_UNBOUND_IDENTIFIER, CompileError, Diagnostic, TemplateError
from .format_spec import FormatSpec, parse_format_spec
from .plan import EmissionPlan, build_plan
from .scanner import CodeSegment, Segment, segment_template
from .source import TemplateSource, load_source
from .tail import StatementsThenExpr, TailClassification, classify_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledTemplate:
    source: TemplateSource
    segments: tuple[Segment, ...]
    classifications: tuple[TailClassification, ...]
    plan: EmissionPlan
    requirement: BindingRequirement


@dataclass(frozen=True)
class RecordRequest:
    """Bind a template to a record type through an explicit field list."""

    type_name: str
    bindings: tuple[tuple[str, str], ...]
    template_path: Path
    function_name: str = "render"
    impl_generics: str = ""
    where_clause: str = ""


@dataclass(frozen=True)
class InlineRequest:
    """Splice a template at a call site; known_names lists the bindings visible there, if known."""

    template_path: Path
    scope: str = "<call site>"
    known_names: tuple[str, ...] | None = None


@dataclass(frozen=True)
class GeneratedRoutine:
    text: str
    plan: EmissionPlan
    diagnostics: tuple[Diagnostic, ...] = ()


@dataclass
class PlanCache:
    """Process-scoped memo of compiled templates keyed by path and content fingerprint."""

    entries: dict[tuple[str, str], tuple[str, CompiledTemplate]] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    def get(self, source: TemplateSource, dialect: HostDialect) -> CompiledTemplate | None:
        entry = self.entries.get((source.path, dialect.name))
        if entry is None or entry[0] != source.fingerprint:
            self.misses += 1
            logger.debug("plan cache miss: %s", source.path)
            return None
        self.hits += 1
        logger.debug("plan cache hit: %s", source.path)
        return entry[1]

    def put(self, compiled: CompiledTemplate, dialect: HostDialect) -> None:
        key = (compiled.source.path, dialect.name)
        self.entries[key] = (compiled.source.fingerprint, compiled)

    def clear(self) -> None:
        self.entries.clear()
        self.hits = 0
        self.misses = 0


def _located(source: TemplateSource, exc: TemplateError) -> CompileError:
    return CompileError(source.diagnostic(exc.code, exc.message, exc.offset))


def compile_source(source: TemplateSource, dialect: HostDialect) -> CompiledTemplate:
    try:
        segments = segment_template(source, dialect)
        classifications: list[TailClassification] = []
        specs: list[FormatSpec | None] = []
        for segment in segments:
            if not isinstance(segment, CodeSegment):
                continue
            classification = classify_code(segment.text, dialect, base_offset=segment.body_start)
            classifications.append(classification)
            if isinstance(classification, StatementsThenExpr):
                specs.append(parse_format_spec(classification.format_spec, dialect, classification.spec_offset))
            else:
                specs.append(None)
    except TemplateError as exc:
        raise _located(source, exc) from exc

    plan = build_plan(source.path, segments, classifications, specs)
    requirement = collect_free_identifiers(segments, classifications, dialect)
    logger.debug(
        "compiled %s: %d segments, %d ops, digest %s",
        source.path,
        len(segments),
        len(plan.ops),
        plan.digest(),
    )
    return CompiledTemplate(
        source=source,
        segments=segments,
        classifications=tuple(classifications),
        plan=plan,
        requirement=requirement,
    )


def compile_file(path: Path, dialect: HostDialect, cache: PlanCache | None = None) -> CompiledTemplate:
    source = load_source(path)
    if cache is not None:
        cached = cache.get(source, dialect)
        if cached is not None:
            return cached
    compiled = compile_source(source, dialect)
    if cache is not None:
        cache.put(compiled, dialect)
    return compiled


def binding_diagnostics(
    compiled: CompiledTemplate, available: Sequence[str], config: CompilerConfig
) -> tuple[Diagnostic, ...]:
    if not config.warn_unbound:
        return ()
    diags: list[Diagnostic] = []
    for name, offset in compiled.requirement.missing_from(available):
        diags.append(
            compiled.source.diagnostic(
                W_UNBOUND_IDENTIFIER,
                f"identifier '{name}' is not bound by the template inputs",
                offset,
                severity="warning",
            )
        )
    if diags and config.warnings_as_errors:
        raise CompileError(replace(diags[0], severity="error"))
    for diag in diags:
        logger.warning("%s:%d:%d: %s", diag.path, diag.line, diag.col, diag.message)
    return tuple(diags)


def generate_record_routine(
    request: RecordRequest, config: CompilerConfig, cache: PlanCache | None = None
) -> GeneratedRoutine:
    compiled = compile_file(request.template_path, config.dialect, cache)
    diags = binding_diagnostics(compiled, [name for name, _ in request.bindings], config)
    if config.dialect.writer == "rust":
        text = rust_writer.write_record_routine(
            compiled.plan,
            request.type_name,
            request.bindings,
            impl_generics=request.impl_generics,
            where_clause=request.where_clause,
            include_path=str(request.template_path.resolve()),
        )
    else:
        text = python_writer.write_record_routine(
            compiled.plan, request.function_name, request.bindings, config.dialect
        )
    return GeneratedRoutine(text=text, plan=compiled.plan, diagnostics=diags)


def generate_inline_routine(
    request: InlineRequest, config: CompilerConfig, cache: PlanCache | None = None
) -> GeneratedRoutine:
    compiled = compile_file(request.template_path, config.dialect, cache)
    diags: tuple[Diagnostic, ...] = ()
    if request.known_names is not None:
        diags = binding_diagnostics(compiled, request.known_names, config)
    if config.dialect.writer == "rust":
        text = rust_writer.write_inline_routine(compiled.plan, include_path=str(request.template_path.resolve()))
    else:
        text = python_writer.write_inline_routine(compiled.plan, config.dialect)
    return GeneratedRoutine(text=text, plan=compiled.plan, diagnostics=diags)
