#!/usr/bin/env python3
"""Count or randomly sample volumes under an LOCC category.

Builds the category tree from the configured outline, loads the volume
listing and answers one query. Output is JSON on stdout; diagnostics go to
stderr.

Usage:
    python3 scripts/locc_sampler.py --volumes eng-QH-callno count QH301-705.5
    python3 scripts/locc_sampler.py --volumes eng-QH-callno sample QH 25 --seed 7
    python3 scripts/locc_sampler.py --config conf/sampler.json stats --depth 2
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from dataclasses import replace
from pathlib import Path

from locc_sampling.bootstrap import load_tree
from locc_sampling.config import load_config
from locc_sampling.errors import CategoryNotFound, RangeParseError, SampleTooLarge
from locc_sampling.io_utils import dumps_json

log = logging.getLogger("locc_sampler")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(dumps_json(obj))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Count or sample volumes under an LOCC category."
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON settings file")
    parser.add_argument(
        "--volumes", type=Path, default=None,
        help="Volume call-number listing (overrides config)",
    )
    parser.add_argument(
        "--outline", type=Path, default=None,
        help="Outline file, text or JSON (default: built-in QH outline)",
    )
    parser.add_argument(
        "--strict-miss", action="store_true",
        help="Report a miss instead of falling back to the enclosing range",
    )
    parser.add_argument("--verbose", "-v", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    count = sub.add_parser("count", help="Number of volumes under a category")
    count.add_argument("category")

    sample = sub.add_parser("sample", help="Random sample of volume ids")
    sample.add_argument("category")
    sample.add_argument("n", type=int)
    sample.add_argument("--seed", type=int, default=None, help="Random seed")

    stats = sub.add_parser("stats", help="Load counters and tree summary")
    stats.add_argument("--category", default=None, help="Summarize this subtree only")
    stats.add_argument("--depth", type=int, default=None, help="Maximum depth to expand")
    return parser


def main() -> int:
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Error: cannot load config: {exc}", file=sys.stderr)
        return 1
    if args.volumes is not None:
        config = replace(config, volume_callno=args.volumes)
    if args.outline is not None:
        config = replace(config, outline_path=args.outline)
    if args.strict_miss:
        config = replace(config, strict_miss=True)

    for label, path in (("volume listing", config.volume_callno), ("outline", config.outline_path)):
        if path is not None and not path.exists():
            print(f"Error: {label} not found: {path}", file=sys.stderr)
            return 1

    try:
        tree, file_stats = load_tree(config)
    except (OSError, ValueError) as exc:
        log.debug("Tree load failed", exc_info=True)
        print(f"Error: cannot load tree: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command == "count":
            dump_json({"category": args.category, "count": tree.count(args.category)})
        elif args.command == "sample":
            if args.n < 0:
                raise SystemExit("n must be >= 0")
            seed = args.seed if args.seed is not None else config.seed
            rng = random.Random(seed) if seed is not None else None
            ids = tree.sample(args.category, args.n, rng=rng)
            dump_json({"category": args.category, "requested": args.n, "ids": ids})
        else:
            dump_json({
                "load": tree.stats.as_dict(),
                "volume_file": file_stats.as_dict(),
                "consistent": tree.is_consistent(),
                "tree": tree.describe(args.category, max_depth=args.depth),
            })
    except (CategoryNotFound, SampleTooLarge, RangeParseError) as exc:
        log.debug("Query failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
