"""Volume record provider.

Reads the volume-to-call-number listing the tree is loaded from. Each line
holds a volume id followed by the list of its call numbers::

    uc2.ark:/13960/t57d2rr1p        ['QH81 .W68', 'QH81 .W56']

A call number is reduced to its class part, the text before the first
Cutter number (``QH81 .W68`` -> ``QH81``). Class parts failing the category
grammar are dropped. JSONL listings with ``volume_id`` and ``call_numbers``
fields are read as well.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass, field
from pathlib import Path

from locc_sampling.category_label import validate_category_string
from locc_sampling.io_utils import load_jsonl

log = logging.getLogger(__name__)

_CUTTER_SPLIT_RE = re.compile(r"\s*\.(?=[A-Z])")
_QUOTED_RE = re.compile(r"'([^']*)'|\"([^\"]*)\"")


@dataclass(frozen=True, slots=True)
class VolumeRecord:
    volume_id: str
    call_numbers: tuple[str, ...]


@dataclass(slots=True)
class VolumeFileStats:
    lines: int = 0
    malformed_lines: int = 0
    discarded_lines: int = 0
    records: int = 0
    rejected_call_numbers: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["rejected_call_numbers"] = len(self.rejected_call_numbers)
        return payload


def class_part(call_number: str) -> str:
    """Strip quotes and the Cutter part from a call number."""
    text = call_number.strip().strip("'\"").strip()
    return _CUTTER_SPLIT_RE.split(text, maxsplit=1)[0].strip()


def parse_volume_line(line: str) -> VolumeRecord | None:
    """Parse one listing line; None when it has no id or no bracketed list."""
    pivot = line.find("[")
    last = line.rfind("]")
    if pivot < 0 or last < pivot:
        return None
    volume_id = line[:pivot].strip()
    if not volume_id:
        return None
    inner = line[pivot + 1:last]
    quoted = [a or b for a, b in _QUOTED_RE.findall(inner)]
    items = quoted if quoted else [part for part in inner.split(",") if part.strip()]
    return VolumeRecord(volume_id, tuple(item.strip() for item in items))


def category_records(
    volumes: Iterable[VolumeRecord],
    stats: VolumeFileStats | None = None,
) -> Iterator[tuple[str, str]]:
    """Yield ``(category, volume_id)`` pairs, one per distinct valid class."""
    stats = stats if stats is not None else VolumeFileStats()
    for volume in volumes:
        seen: set[str] = set()
        for call_number in volume.call_numbers:
            category = class_part(call_number)
            if not validate_category_string(category):
                stats.rejected_call_numbers.append(call_number)
                continue
            if category in seen:
                continue
            seen.add(category)
            stats.records += 1
            yield category, volume.volume_id
        if not seen:
            stats.discarded_lines += 1


def iter_volume_lines(lines: Iterable[str], stats: VolumeFileStats) -> Iterator[VolumeRecord]:
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        stats.lines += 1
        record = parse_volume_line(line)
        if record is None:
            log.warning("Malformed volume line %d: %r", line_no, line[:120])
            stats.malformed_lines += 1
            continue
        yield record


def _iter_jsonl(path: Path, stats: VolumeFileStats) -> Iterator[VolumeRecord]:
    for row in load_jsonl(path):
        stats.lines += 1
        volume_id = str(row.get("volume_id") or "").strip()
        call_numbers = row.get("call_numbers")
        if isinstance(call_numbers, str):
            call_numbers = [call_numbers]
        if not volume_id or not isinstance(call_numbers, list):
            stats.malformed_lines += 1
            continue
        yield VolumeRecord(volume_id, tuple(str(c) for c in call_numbers))


def read_volume_file(path: Path) -> tuple[list[tuple[str, str]], VolumeFileStats]:
    """Read a listing into ``(category, volume_id)`` records plus counters."""
    stats = VolumeFileStats()
    if path.suffix.lower() == ".jsonl":
        volumes: Iterable[VolumeRecord] = _iter_jsonl(path, stats)
    else:
        volumes = iter_volume_lines(
            path.read_text(encoding="utf-8").splitlines(), stats
        )
    records = list(category_records(volumes, stats))
    log.info(
        "Total #lines: %d, #lines discarded: %d, #records: %d",
        stats.lines,
        stats.discarded_lines + stats.malformed_lines,
        stats.records,
    )
    return records, stats
