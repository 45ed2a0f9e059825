"""
Subset planning.

Partitions a font's coverage into disjoint buckets following the reference
dataset, then splits whatever is left into bounded "misc" buckets.
"""

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from fontsplit.config.unicode_ranges import REFERENCE_BUCKETS, ReferenceBucket
from fontsplit.core.errors import PlanningError
from fontsplit.core.font_io import FontRepertoire
from fontsplit.core.ranges import MAX_CODEPOINT
from fontsplit.utils.logging import logger

RESIDUAL_PREFIX = "misc"


@dataclass(frozen=True)
class SubsetBucket:
    """A disjoint slice of a font's coverage, shipped as one webfont file."""

    index: int
    name: str
    priority: int | None  # None for residual buckets
    codepoints: frozenset[int]

    @property
    def is_residual(self) -> bool:
        return self.priority is None

    def __len__(self) -> int:
        return len(self.codepoints)


def validate_reference(reference: Sequence[ReferenceBucket]) -> None:
    """
    Check a reference dataset before planning with it.

    Raises:
        PlanningError: On empty or duplicate names, non-integer ranks or
            codepoints outside Unicode
    """
    seen: set[str] = set()
    for definition in reference:
        if not definition.name:
            raise PlanningError("Reference bucket without a name")
        if definition.name in seen:
            raise PlanningError(f"Duplicate reference bucket: {definition.name}")
        seen.add(definition.name)

        if isinstance(definition.priority, bool) or not isinstance(
            definition.priority, int
        ):
            raise PlanningError(
                f"Reference bucket {definition.name} has non-integer priority "
                f"{definition.priority!r}"
            )

        try:
            codepoints = definition.codepoints
        except (ValueError, TypeError) as e:
            raise PlanningError(
                f"Reference bucket {definition.name} has invalid ranges: {e}"
            ) from e
        if codepoints and (min(codepoints) < 0 or max(codepoints) > MAX_CODEPOINT):
            raise PlanningError(
                f"Reference bucket {definition.name} has codepoints outside Unicode"
            )


def load_reference_file(path: Path) -> list[ReferenceBucket]:
    """
    Load a reference dataset from JSON.

    Expected shape: [{"name": "latin", "priority": 0, "ranges": ["0000-00FF"]}, ...]
    Entries without a priority are ranked by their position in the list.

    Raises:
        PlanningError: If the file is unreadable or malformed
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise PlanningError(f"Failed to read reference data {path}: {e}") from e

    if not isinstance(raw, list):
        raise PlanningError(f"Reference data {path} must be a JSON list")

    reference = []
    for position, item in enumerate(raw):
        if not isinstance(item, dict) or not isinstance(item.get("ranges"), list):
            raise PlanningError(f"Malformed reference entry #{position} in {path}")
        reference.append(
            ReferenceBucket(
                name=str(item.get("name", "")),
                priority=item.get("priority", position),
                ranges=tuple(str(r) for r in item["ranges"]),
            )
        )

    validate_reference(reference)
    logger.info(f"Loaded {len(reference)} reference buckets from {path}")
    return reference


def chunk_residual(codepoints: frozenset[int], chunk_size: int) -> list[frozenset[int]]:
    """Split codepoints into fixed-size chunks over sorted codepoint order."""
    ordered = sorted(codepoints)
    return [
        frozenset(ordered[i : i + chunk_size])
        for i in range(0, len(ordered), chunk_size)
    ]


def plan_subsets(
    repertoire: FontRepertoire,
    reference: Sequence[ReferenceBucket] = REFERENCE_BUCKETS,
    *,
    max_subset_size: int = 200,
    residual_chunk_size: int | None = None,
    min_bucket_size: int = 1,
    preload: Iterable[int] = (),
) -> list[SubsetBucket]:
    """
    Partition a font's coverage into ordered, disjoint buckets.

    Reference definitions are visited by ascending priority (ties keep their
    dataset order). Each claims the still-unassigned codepoints it shares with
    the font; the first definition to claim a codepoint keeps it. Whatever no
    definition claims ends up in residual buckets, split into chunks of
    residual_chunk_size once it exceeds max_subset_size.

    Preloaded codepoints the font covers are set aside before any definition
    claims them and always ship in the first bucket, whichever it is.

    Args:
        repertoire: Font to plan
        reference: Prioritized reference definitions
        max_subset_size: Largest residual bucket left unsplit
        residual_chunk_size: Chunk size for an oversized residual
            (defaults to max_subset_size)
        min_bucket_size: Intersections smaller than this are left to the residual
        preload: Codepoints forced into the first bucket

    Returns:
        Buckets whose union is exactly the font's coverage

    Raises:
        PlanningError: If the reference data is malformed
    """
    validate_reference(reference)

    remaining = set(repertoire.codepoints)
    preloaded = frozenset(remaining.intersection(preload))
    remaining -= preloaded
    buckets: list[SubsetBucket] = []

    for definition in sorted(reference, key=lambda d: d.priority):
        if not remaining:
            break
        claimed = remaining & definition.codepoints
        if not claimed:
            continue
        if len(claimed) < min_bucket_size:
            logger.debug(
                f"Rejecting subset: {definition.name} (unique codepoints: {len(claimed)})"
            )
            continue
        remaining -= claimed
        if not buckets and preloaded:
            logger.debug(f"Preloading {len(preloaded)} codepoints into {definition.name}")
            claimed |= preloaded
        buckets.append(
            SubsetBucket(
                index=len(buckets),
                name=definition.name,
                priority=definition.priority,
                codepoints=frozenset(claimed),
            )
        )

    # no definition claimed anything: the preload leads the residual
    leading = preloaded if not buckets else frozenset()
    if leading:
        logger.debug(f"Preloading {len(leading)} codepoints into {RESIDUAL_PREFIX}1")

    if remaining or leading:
        residual = frozenset(remaining)
        if len(residual) > max_subset_size:
            chunks = chunk_residual(residual, residual_chunk_size or max_subset_size)
        else:
            chunks = [residual]
        logger.debug(
            f"Splitting {len(residual)} residual codepoints into {len(chunks)} subsets"
        )
        chunks[0] = chunks[0] | leading
        for number, chunk in enumerate(chunks, 1):
            buckets.append(
                SubsetBucket(
                    index=len(buckets),
                    name=f"{RESIDUAL_PREFIX}{number}",
                    priority=None,
                    codepoints=chunk,
                )
            )

    logger.info(
        f"Planned {len(repertoire.codepoints)} codepoints of {repertoire.label} "
        f"into {len(buckets)} subsets"
    )
    return buckets
