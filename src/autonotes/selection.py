"""Include/ignore selection over the variant catalog."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_tokens(raw: str | None) -> frozenset[str]:
    """Split a comma-separated list after removing every whitespace character."""

    if not raw:
        return frozenset()
    compact = "".join(raw.split())
    return frozenset(token for token in compact.split(",") if token)


def select_variants(
    catalog: Mapping[str, Path],
    *,
    include: str | None = None,
    ignore: str | None = None,
) -> dict[str, Path]:
    """Return the working set of variants.

    A non-empty include list restricts selection to its members; the ignore list
    always wins over include.
    """

    include_tokens = parse_tokens(include)
    ignore_tokens = parse_tokens(ignore)

    unknown = sorted((include_tokens | ignore_tokens) - set(catalog))
    if unknown:
        logger.warning("Ignoring unknown variant names: %s", ", ".join(unknown))

    selected: dict[str, Path] = {}
    for variant, output_subpath in catalog.items():
        if variant in ignore_tokens:
            continue
        if include_tokens and variant not in include_tokens:
            continue
        selected[variant] = output_subpath
    return selected
