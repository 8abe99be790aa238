"""Outline providers.

An outline is an ordered, pre-order sequence of full category strings such
as ``"QH301-705.5"``. The tree does not care where it comes from; this
module supplies the built-in QH outline and reads outline files.

Text outlines hold one entry per line. Anything after the first whitespace
is a caption and ignored, ``#`` starts a comment, blank lines are skipped::

    QH1-278.5      Natural history (General)
    QH1-199.5      General
    # subdivided below
    QH201-278.5    Microscopy

JSON outlines are either a list of strings or a list of objects with a
``category`` key.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from locc_sampling.io_utils import load_json

# QH: Natural history - Biology
DEFAULT_OUTLINE: tuple[str, ...] = (
    "QH1-278.5",
    "QH1-199.5",
    "QH201-278.5",
    "QH301-705.5",
    "QH359-425",
    "QH426-470",
    "QH471-489",
    "QH501-531",
    "QH540-549.5",
    "QH573-671",
    "QH705-705.5",
)


def parse_outline_lines(lines: list[str]) -> list[str]:
    entries: list[str] = []
    for line in lines:
        text = line.split("#", 1)[0].strip()
        if not text:
            continue
        entries.append(text.split(None, 1)[0])
    return entries


def _entries_from_json(payload: Any, path: Path) -> list[str]:
    if not isinstance(payload, list):
        raise ValueError(f"Outline in {path} must be a JSON list")
    entries: list[str] = []
    for pos, item in enumerate(payload):
        if isinstance(item, str):
            entries.append(item.strip())
        elif isinstance(item, dict) and isinstance(item.get("category"), str):
            entries.append(item["category"].strip())
        else:
            raise ValueError(f"{path}: outline item {pos} has no category")
    return entries


def load_outline(path: Path) -> list[str]:
    """Read outline entries from a ``.json`` or plain-text file."""
    if path.suffix.lower() == ".json":
        return _entries_from_json(load_json(path), path)
    return parse_outline_lines(path.read_text(encoding="utf-8").splitlines())
