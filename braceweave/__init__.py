from .compiler import (
    CompiledTemplate,
    GeneratedRoutine,
    InlineRequest,
    PlanCache,
    RecordRequest,
    compile_file,
    compile_source,
    generate_inline_routine,
    generate_record_routine,
)
from .config import CompilerConfig, default_config, load_config
from .dialect import PYTHON, RUST, HostDialect, resolve_dialect
from .errors import CompileError, Diagnostic, HostEmissionError, TemplateError
from .runtime import attach_template, emit_inline, render_inline, template

__all__ = [
    "__version__",
    "CompiledTemplate",
    "CompileError",
    "CompilerConfig",
    "Diagnostic",
    "GeneratedRoutine",
    "HostDialect",
    "HostEmissionError",
    "InlineRequest",
    "PlanCache",
    "PYTHON",
    "RecordRequest",
    "RUST",
    "TemplateError",
    "attach_template",
    "compile_file",
    "compile_source",
    "default_config",
    "emit_inline",
    "generate_inline_routine",
    "generate_record_routine",
    "load_config",
    "render_inline",
    "resolve_dialect",
    "template",
]

__version__ = "0.1.0"
