"""
Fallback font resolution.

The reserved family name FALLBACK_FONT_NAME stands for a bundled font set
that together covers as much of assigned Unicode as possible. It is planned,
built and stored exactly like any other font; only its origin differs.
"""

import unicodedata
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

from fontsplit.config.paths import FALLBACK_CACHE_DIR, FALLBACK_FONT_NAME
from fontsplit.core.errors import FontLoadError
from fontsplit.core.font_io import FontRepertoire, read_repertoires
from fontsplit.core.ranges import MAX_CODEPOINT
from fontsplit.operations.download import fallback_font_paths
from fontsplit.utils.logging import logger

# Unassigned, surrogate and private-use codepoints never need a fallback
NON_CHARACTER_CATEGORIES = {"Cn", "Cs", "Co"}


@lru_cache(maxsize=1)
def assigned_codepoints() -> frozenset[int]:
    """Every codepoint assigned in the interpreter's Unicode database."""
    return frozenset(
        cp
        for cp in range(MAX_CODEPOINT + 1)
        if unicodedata.category(chr(cp)) not in NON_CHARACTER_CATEGORIES
    )


class FallbackResolver:
    """Builds the fallback repertoires and expands font stacks."""

    def __init__(self, sources: Sequence[FontRepertoire]):
        self.sources = list(sources)
        self._repertoires: list[FontRepertoire] | None = None

    @classmethod
    def from_directory(cls, directory: Path = FALLBACK_CACHE_DIR) -> "FallbackResolver":
        """
        Load the cached fallback font set.

        Raises:
            FontLoadError: If a fallback font is missing (run download-fallback)
        """
        sources = []
        for path in fallback_font_paths(directory):
            if not path.exists():
                raise FontLoadError(
                    f"Fallback font not found: {path}. Run download-fallback first"
                )
            sources.extend(read_repertoires(path))
        return cls(sources)

    def repertoires(self) -> list[FontRepertoire]:
        """
        Fallback repertoires under the reserved family name.

        Each source keeps only assigned codepoints not claimed by an earlier
        source, so the fallback faces never overlap.
        """
        if self._repertoires is not None:
            return self._repertoires

        assigned = assigned_codepoints()
        claimed: set[int] = set()
        repertoires = []
        for source in self.sources:
            coverage = (source.codepoints & assigned) - claimed
            if not coverage:
                logger.debug(f"Fallback source {source.label} adds no codepoints")
                continue
            claimed |= coverage
            repertoires.append(source.renamed(FALLBACK_FONT_NAME, frozenset(coverage)))

        logger.info(
            f"Fallback font covers {len(claimed)} of {len(assigned)} assigned codepoints "
            f"in {len(repertoires)} faces"
        )
        self._repertoires = repertoires
        return repertoires

    def resolve_font_stack(
        self, stack: Sequence[str], fonts: Sequence[FontRepertoire]
    ) -> list[FontRepertoire]:
        """
        Repertoires for each family of a font stack, in stack order.

        Family names match case-insensitively. The reserved fallback name
        expands to the fallback repertoires; families without a loaded font are
        skipped with a warning.
        """
        resolved: list[FontRepertoire] = []
        seen: set[tuple[str, str]] = set()
        for family in stack:
            wanted = family.casefold()
            if wanted == FALLBACK_FONT_NAME.casefold():
                matches = self.repertoires()
            else:
                matches = [font for font in fonts if font.family.casefold() == wanted]
                if not matches:
                    logger.warning(f"No font loaded for family: {family}")
            for font in matches:
                key = font.key
                if key not in seen:
                    seen.add(key)
                    resolved.append(font)
        return resolved
