"""Build a loaded tree from settings, once, at process start."""
from __future__ import annotations

import logging

from locc_sampling.category_tree import CategoryTree
from locc_sampling.config import SamplerConfig
from locc_sampling.outline import load_outline
from locc_sampling.volumes import VolumeFileStats, read_volume_file

log = logging.getLogger(__name__)


def load_tree(config: SamplerConfig) -> tuple[CategoryTree, VolumeFileStats]:
    """Build the outline, then attach the volumes listed in the config.

    Raises:
        FileNotFoundError: A configured outline or volume file is missing.
        ValueError: An outline or volume file is not valid JSON or UTF-8.
    """
    outline = load_outline(config.outline_path) if config.outline_path else None
    tree = CategoryTree(outline, strict_miss=config.strict_miss)

    file_stats = VolumeFileStats()
    if config.volume_callno is not None:
        records, file_stats = read_volume_file(config.volume_callno)
        tree.load_ids(records)
        if not tree.is_consistent():
            log.error(
                "Inserted %d ids but the tree holds %d",
                tree.stats.inserted_ids,
                tree.id_count(),
            )
    else:
        log.warning("No volume listing configured; the tree is empty")
    return tree, file_stats
