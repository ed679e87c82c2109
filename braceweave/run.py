from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .compiler import (
    InlineRequest,
    PlanCache,
    RecordRequest,
    compile_file,
    generate_inline_routine,
    generate_record_routine,
)
from .config import CompilerConfig, ConfigError, default_config, load_config
from .dialect import DialectError, resolve_dialect
from .errors import CompileError, Diagnostic
from .io_atomic import write_generated

logger = logging.getLogger(__name__)


def _print_diagnostics(diags: list[Diagnostic]) -> None:
    payload = [d.to_dict() for d in diags]
    print(json.dumps(payload, ensure_ascii=False, indent=2), file=sys.stderr)


def _parse_binding(raw: str) -> tuple[str, str]:
    name, _, type_text = raw.partition(":")
    name = name.strip()
    if not name.isidentifier():
        raise argparse.ArgumentTypeError(f"E_BINDING_INVALID: {raw!r} (expected name:Type)")
    return name, type_text.strip()


def _load_config(args: argparse.Namespace) -> CompilerConfig:
    if args.config:
        config = load_config(Path(args.config))
    else:
        config = default_config()
    if args.dialect:
        config = replace(config, dialect=resolve_dialect(args.dialect))
    return config


def _cmd_compile(args: argparse.Namespace, config: CompilerConfig, cache: PlanCache | None) -> int:
    template_path = Path(args.template)
    if args.shape == "record":
        if not args.type_name:
            print("E_TYPE_NAME_REQUIRED: --type-name is required for --shape record", file=sys.stderr)
            return 2
        request = RecordRequest(
            type_name=args.type_name,
            bindings=tuple(args.binding),
            template_path=template_path,
            function_name=args.function_name or "render",
            impl_generics=args.impl_generics,
            where_clause=args.where_clause,
        )
        generated = generate_record_routine(request, config, cache)
    else:
        known = tuple(args.known_name) if args.known_name else None
        generated = generate_inline_routine(
            InlineRequest(template_path=template_path, known_names=known), config, cache
        )

    if generated.diagnostics:
        _print_diagnostics(list(generated.diagnostics))
    if args.out:
        changed = write_generated(Path(args.out), generated.text)
        logger.info("%s %s", "wrote" if changed else "unchanged", args.out)
    else:
        sys.stdout.write(generated.text)
    return 0


def _cmd_check(args: argparse.Namespace, config: CompilerConfig, cache: PlanCache | None) -> int:
    diags: list[Diagnostic] = []
    for raw in args.template:
        try:
            compile_file(Path(raw), config.dialect, cache)
        except CompileError as exc:
            diags.append(exc.diagnostic)
    if diags:
        _print_diagnostics(diags)
        return 2
    return 0


def _cmd_plan(args: argparse.Namespace, config: CompilerConfig, cache: PlanCache | None) -> int:
    compiled = compile_file(Path(args.template), config.dialect, cache)
    payload = {
        "digest": compiled.plan.digest(),
        "estimated_size": compiled.plan.estimated_size,
        "fingerprint": compiled.source.fingerprint,
        "free_identifiers": [name for name, _ in compiled.requirement.names],
        "plan": compiled.plan.to_dict(),
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="braceweave")
    ap.add_argument("--config", help="Path to compiler config JSON.")
    ap.add_argument("--dialect", help="Builtin dialect name (rust, python) or dialect JSON path.")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    sub = ap.add_subparsers(dest="command", required=True)

    compile_ap = sub.add_parser("compile", help="Generate a routine from a template.")
    compile_ap.add_argument("--template", required=True, help="Template file path.")
    compile_ap.add_argument("--shape", choices=["record", "inline"], default="record")
    compile_ap.add_argument("--type-name", help="Record type the routine is attached to.")
    compile_ap.add_argument(
        "--binding",
        action="append",
        default=[],
        type=_parse_binding,
        help="Ordered record field as name:Type (repeatable).",
    )
    compile_ap.add_argument("--function-name", help="Function name for Python record routines.")
    compile_ap.add_argument("--impl-generics", default="", help="Generic parameters for the impl header.")
    compile_ap.add_argument("--where-clause", default="", help="Where clause for the impl header.")
    compile_ap.add_argument(
        "--known-name",
        action="append",
        default=[],
        help="Name visible at the inline call site, for unbound-identifier warnings (repeatable).",
    )
    compile_ap.add_argument("--out", help="Output file (default: stdout).")

    check_ap = sub.add_parser("check", help="Compile templates and report diagnostics only.")
    check_ap.add_argument("template", nargs="+", help="Template file paths.")

    plan_ap = sub.add_parser("plan", help="Print the emission plan as JSON.")
    plan_ap.add_argument("--template", required=True, help="Template file path.")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _load_config(args)
    except (ConfigError, DialectError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    cache = PlanCache() if config.cache else None

    handlers = {"compile": _cmd_compile, "check": _cmd_check, "plan": _cmd_plan}
    try:
        return handlers[args.command](args, config, cache)
    except CompileError as exc:
        _print_diagnostics([exc.diagnostic])
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
