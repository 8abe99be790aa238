"""Sampler settings from an optional JSON file and the environment.

File keys (all optional)::

    {
      "volume_callno": "data/eng-QH-callno",
      "outline": "conf/outline.txt",
      "strict_miss": false,
      "seed": 42
    }

Environment variables ``LOCC_VOLUME_CALLNO``, ``LOCC_OUTLINE``,
``LOCC_STRICT_MISS`` and ``LOCC_SEED`` override the file. Relative paths in
the file resolve against the file's directory.
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from locc_sampling.io_utils import load_json

ENV_PREFIX = "LOCC_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True, slots=True)
class SamplerConfig:
    volume_callno: Path | None = None
    outline_path: Path | None = None
    strict_miss: bool = False
    seed: int | None = None


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{key}: expected a boolean, got {value!r}")


def _as_seed(key: str, value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected an integer seed, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key}: expected an integer seed, got {value!r}") from exc


def _as_path(value: Any, base: Path | None) -> Path | None:
    if value is None or value == "":
        return None
    path = Path(str(value)).expanduser()
    if base is not None and not path.is_absolute():
        path = base / path
    return path


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> SamplerConfig:
    """Load settings; ``environ`` defaults to ``os.environ``."""
    config = SamplerConfig()
    if path is not None:
        payload = load_json(path)
        if not isinstance(payload, dict):
            raise ValueError(f"Invalid config payload in {path}")
        base = path.resolve().parent
        config = replace(
            config,
            volume_callno=_as_path(payload.get("volume_callno"), base),
            outline_path=_as_path(payload.get("outline"), base),
            strict_miss=_as_bool("strict_miss", payload.get("strict_miss", False)),
            seed=_as_seed("seed", payload.get("seed")),
        )

    env = os.environ if environ is None else environ
    if f"{ENV_PREFIX}VOLUME_CALLNO" in env:
        config = replace(config, volume_callno=_as_path(env[f"{ENV_PREFIX}VOLUME_CALLNO"], None))
    if f"{ENV_PREFIX}OUTLINE" in env:
        config = replace(config, outline_path=_as_path(env[f"{ENV_PREFIX}OUTLINE"], None))
    if f"{ENV_PREFIX}STRICT_MISS" in env:
        config = replace(
            config,
            strict_miss=_as_bool(f"{ENV_PREFIX}STRICT_MISS", env[f"{ENV_PREFIX}STRICT_MISS"]),
        )
    if f"{ENV_PREFIX}SEED" in env:
        config = replace(config, seed=_as_seed(f"{ENV_PREFIX}SEED", env[f"{ENV_PREFIX}SEED"]))
    return config
