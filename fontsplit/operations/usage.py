"""
Glyph usage intersection for static-site mode.

Per-page usage sets come from an external site scanner as JSON; this module
only decides which buckets each page needs.
"""

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from fontsplit.core.errors import ConfigError
from fontsplit.operations.plan import SubsetBucket
from fontsplit.utils.logging import logger


@dataclass(frozen=True)
class GlyphUsageSet:
    """Codepoints rendered by one page, and optionally the families it uses."""

    page: str
    codepoints: frozenset[int]
    font_stack: tuple[str, ...] | None = None

    @classmethod
    def from_text(
        cls, page: str, text: str, font_stack: Iterable[str] | None = None
    ) -> "GlyphUsageSet":
        return cls(
            page,
            frozenset(ord(ch) for ch in text),
            tuple(font_stack) if font_stack is not None else None,
        )

    def uses_family(self, family: str) -> bool:
        """True if the page's font stack names family (or names nothing).

        Family names match case-insensitively, as CSS matches them.
        """
        if self.font_stack is None:
            return True
        wanted = family.casefold()
        return any(name.casefold() == wanted for name in self.font_stack)


def relevant_buckets(
    buckets: Sequence[SubsetBucket], usage: GlyphUsageSet
) -> set[int]:
    """Indexes of the buckets sharing at least one codepoint with usage."""
    return {
        bucket.index
        for bucket in buckets
        if not bucket.codepoints.isdisjoint(usage.codepoints)
    }


def _parse_codepoints(page: str, value) -> frozenset[int]:
    if isinstance(value, str):
        return frozenset(ord(ch) for ch in value)
    if isinstance(value, list) and all(
        isinstance(cp, int) and not isinstance(cp, bool) for cp in value
    ):
        return frozenset(value)
    raise ConfigError(f"Usage entry for {page} must be text or a list of codepoints")


def parse_usage_sets(raw: dict) -> list[GlyphUsageSet]:
    """
    Build usage sets from decoded JSON.

    Each page maps to its text, a list of codepoints, or an object with
    "text" or "codepoints" plus an optional "fonts" list.

    Raises:
        ConfigError: If an entry has an unexpected shape
    """
    if not isinstance(raw, dict):
        raise ConfigError("Usage data must be a JSON object keyed by page")

    usage_sets = []
    for page, entry in raw.items():
        font_stack = None
        if isinstance(entry, dict):
            fonts = entry.get("fonts")
            if fonts is not None:
                if not isinstance(fonts, list):
                    raise ConfigError(f"Usage entry for {page}: fonts must be a list")
                font_stack = tuple(str(f) for f in fonts)
            if "codepoints" in entry:
                value = entry["codepoints"]
            else:
                value = entry.get("text", "")
        else:
            value = entry
        usage_sets.append(
            GlyphUsageSet(page, _parse_codepoints(page, value), font_stack)
        )
    return usage_sets


def load_usage_sets(path: Path) -> list[GlyphUsageSet]:
    """
    Load per-page usage sets from a JSON file.

    Raises:
        ConfigError: If the file is unreadable or malformed
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read usage data {path}: {e}") from e

    usage_sets = parse_usage_sets(raw)
    logger.info(f"Loaded glyph usage for {len(usage_sets)} pages from {path}")
    return usage_sets
