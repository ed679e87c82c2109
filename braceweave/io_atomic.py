from __future__ import annotations

import os
import tempfile
from pathlib import Path


def write_generated(path: Path, text: str, encoding: str = "utf-8") -> bool:
    """Atomically replace path with text; returns False when the content is already current.

    Leaving an unchanged file untouched keeps its mtime, so downstream
    build steps do not rebuild.
    """
    if path.is_symlink():
        raise ValueError(f"E_OUTPUT_SYMLINK: {path}")
    if path.exists() and path.read_text(encoding=encoding) == text:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile("w", encoding=encoding, delete=False, dir=path.parent, newline="") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp_path = Path(tmp.name)
        if path.exists():
            os.chmod(tmp_path, path.stat().st_mode & 0o777)
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
    return True
