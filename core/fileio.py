"""File helpers for the JSON store and config.yaml.

Every write goes to a sibling temp file that is fsynced and then renamed
over the target, so readers see either the old record or the new one.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml


def _read_payload(path: Path) -> str | None:
    """File contents, or None when the file is missing or blank."""
    if not path.exists():
        return None
    text = path.read_text(encoding="utf-8")
    return text if text.strip() else None


def read_json(path: Path, default: Any = None) -> Any:
    """Parse a JSON record (object or list); *default* when there is none.

    Raises json.JSONDecodeError for unparsable content.
    """
    text = _read_payload(path)
    return default if text is None else json.loads(text)


def read_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML mapping; anything else (or no file) reads as {}."""
    text = _read_payload(path)
    if text is None:
        return {}
    loaded = yaml.safe_load(text)
    return loaded if isinstance(loaded, dict) else {}


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=path.suffix)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    _atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def write_yaml_atomic(path: Path, data: dict[str, Any]) -> None:
    _atomic_write(path, yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False))
