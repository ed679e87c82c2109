#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import argparse
import hashlib
import json
import subprocess
import sys
from pathlib import Path


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def run_cmd(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    print("+", " ".join(cmd))
    return subprocess.run(cmd, capture_output=True, text=True)


def load_manifest(path: Path) -> dict:
    if not path.exists():
        raise SystemExit(f"MANIFEST_NOT_FOUND: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"MANIFEST_INVALID_JSON: {exc}") from exc


def resolve_path(raw: str) -> Path:
    p = Path(raw)
    if not p.is_absolute():
        p = Path.cwd() / p
    return p


def case_commands(case: dict, py: str) -> list[list[str]]:
    template = str(resolve_path(case["template"]))
    base = [py, "-m", "braceweave.run", "--dialect", case.get("dialect", "rust")]
    commands = [base + ["plan", "--template", template]]
    shape = case.get("shape", "record")
    compile_cmd = base + ["compile", "--template", template, "--shape", shape]
    if shape == "record":
        compile_cmd += ["--type-name", case.get("type_name", "Template")]
        for binding in case.get("bindings", []):
            compile_cmd += ["--binding", binding]
    commands.append(compile_cmd)
    return commands


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument(
        "--manifest",
        default="tests/determinism_manifest.json",
        help="Path to determinism manifest JSON.",
    )
    ap.add_argument(
        "--allow-empty",
        action="store_true",
        help="Exit 0 when no cases are configured.",
    )
    args = ap.parse_args()

    manifest = load_manifest(resolve_path(args.manifest))
    cases = manifest.get("cases", [])
    if not isinstance(cases, list):
        raise SystemExit("MANIFEST_CASES_NOT_LIST")
    if not cases:
        print("No determinism cases configured.")
        return 0 if args.allow_empty else 2

    failures = 0
    py = sys.executable

    for case in cases:
        if not isinstance(case, dict) or not case.get("template"):
            print("[FAIL] case missing template")
            failures += 1
            continue
        name = case["template"]
        golden = resolve_path(case["golden"]) if case.get("golden") else None

        ok = True
        compiled_text = ""
        for cmd in case_commands(case, py):
            first = run_cmd(cmd)
            second = run_cmd(cmd)
            if first.returncode != 0 or second.returncode != 0:
                print(f"[FAIL] {cmd[5]} failed: {name}")
                if first.stderr:
                    print(first.stderr.strip())
                ok = False
                break
            if sha256_text(first.stdout) != sha256_text(second.stdout):
                print(f"[FAIL] {cmd[5]} output non-deterministic: {name}")
                ok = False
                break
            compiled_text = first.stdout
        if not ok:
            failures += 1
            continue

        if golden is not None:
            if not golden.is_file():
                print(f"[FAIL] golden not found: {golden}")
                failures += 1
                continue
            if compiled_text.encode("utf-8") != golden.read_bytes():
                print(f"[FAIL] output differs from golden: {golden}")
                failures += 1
                continue

        print(f"[OK] {name}")

    return 2 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
