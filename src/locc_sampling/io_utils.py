"""JSON and JSONL file helpers backed by orjson."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())


def load_jsonl(path: Path) -> list[dict[str, Any]]:
    """Load a JSON Lines file (one JSON object per line). Blank lines skipped."""
    records: list[dict[str, Any]] = []
    for line_no, line in enumerate(path.read_bytes().split(b"\n"), start=1):
        line = line.strip()
        if not line:
            continue
        payload = orjson.loads(line)
        if not isinstance(payload, dict):
            raise ValueError(f"{path}:{line_no}: row must be JSON object")
        records.append(payload)
    return records


def dumps_json(obj: Any, *, pretty: bool = True) -> bytes:
    return orjson.dumps(obj, option=orjson.OPT_INDENT_2 if pretty else 0)
