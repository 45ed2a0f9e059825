"""
Font I/O utilities: locating font files and reading their repertoire.
"""

import hashlib
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from functools import cached_property
from io import BytesIO
from pathlib import Path

from fontTools.ttLib import TTCollection, TTFont, TTLibError

from fontsplit.core.errors import FontLoadError
from fontsplit.core.naming import (
    NAME_ID_FAMILY,
    NAME_ID_SUBFAMILY,
    NAME_ID_TYPOGRAPHIC_FAMILY,
    NAME_ID_VERSION,
    FontStyle,
    extract_name,
    extract_version,
    font_style,
    font_weight,
    get_name,
)
from fontsplit.utils.logging import logger

FONT_PATTERNS = ("*.ttf", "*.otf", "*.ttc", "*.otc", "*.woff", "*.woff2")


@dataclass(frozen=True)
class FontRepertoire:
    """
    One face of a source font and the codepoints it covers.

    The raw font data travels with the repertoire so remote and bundled
    fonts go through the same build path as files on disk.
    """

    source: str
    family: str
    style: FontStyle
    weight: int
    codepoints: frozenset[int]
    data: bytes = field(repr=False, compare=False)
    font_number: int = 0
    version: str = ""
    weight_range: tuple[int, int] | None = None

    @cached_property
    def digest(self) -> str:
        """Content hash of the source data and face index."""
        h = hashlib.sha256(self.data)
        h.update(f":{self.font_number}".encode())
        return h.hexdigest()

    @property
    def key(self) -> tuple[str, str]:
        """Identifies the face together with the family it is published under."""
        return self.digest, self.family

    @property
    def is_variable(self) -> bool:
        return self.weight_range is not None

    @property
    def label(self) -> str:
        """Short human-readable identifier used in logs and diagnostics."""
        parts = [extract_name(self.family) or "font"]
        if self.is_variable:
            parts.append("Variable")
        elif self.style is not FontStyle.NORMAL or self.weight != 400:
            parts.append(f"{self.style.value.capitalize()}{self.weight}")
        version = extract_version(self.version)
        if version:
            parts.append(version)
        return "_".join(parts)

    def renamed(self, family: str, codepoints: frozenset[int]) -> "FontRepertoire":
        """Copy under another family name with a restricted coverage."""
        return replace(self, family=family, codepoints=frozenset(codepoints))


def iter_fonts(
    directory: Path,
    patterns: tuple[str, ...] = FONT_PATTERNS,
    exclude_patterns: list[str] | None = None,
) -> Iterator[Path]:
    """
    Iterate over font files matching patterns, sorted by name.

    Args:
        directory: Directory to search
        patterns: Glob patterns to match
        exclude_patterns: Substrings to exclude from filenames

    Yields:
        Paths to matching font files
    """
    fonts = sorted({f for pattern in patterns for f in directory.glob(pattern)})
    if exclude_patterns:
        fonts = [f for f in fonts if not any(p in f.name for p in exclude_patterns)]
    return iter(fonts)


def expand_font_paths(paths: list[Path]) -> list[Path]:
    """Replace directories in paths by the font files they contain."""
    expanded = []
    for path in paths:
        if path.is_dir():
            expanded.extend(iter_fonts(path))
        else:
            expanded.append(path)
    return expanded


def count_faces(data: bytes) -> int:
    """Number of faces in a font file (1 unless it is a collection)."""
    if data[:4] != b"ttcf":
        return 1
    return len(TTCollection(BytesIO(data)).fonts)


def open_face(data: bytes, font_number: int = 0) -> TTFont:
    """Open one face without recalculating timestamps or bounding boxes."""
    return TTFont(
        BytesIO(data),
        fontNumber=font_number,
        recalcTimestamp=False,
        recalcBBoxes=False,
    )


def _weight_range(font: TTFont) -> tuple[int, int] | None:
    if "fvar" not in font:
        return None
    for axis in font["fvar"].axes:
        if axis.axisTag == "wght":
            return int(axis.minValue), int(axis.maxValue)
    default = font_weight(font)
    return default, default


def read_face(data: bytes, source: str, font_number: int = 0) -> FontRepertoire:
    """
    Read the repertoire and metadata of one face.

    Raises:
        FontLoadError: If the face cannot be parsed or has no glyphs
    """
    try:
        font = open_face(data, font_number)
        try:
            if len(font.getGlyphOrder()) == 0:
                raise FontLoadError(f"{source}#{font_number}: font has no glyphs")
            cmap = font.getBestCmap() or {}
            # weight and style go to their own descriptors, so prefer the
            # typographic family ("Noto Sans") over the legacy one ("Noto Sans SemiBold")
            family = get_name(font, NAME_ID_TYPOGRAPHIC_FAMILY, NAME_ID_FAMILY)
            weight_range = _weight_range(font)
            repertoire = FontRepertoire(
                source=source,
                family=family or Path(source).stem,
                style=font_style(font),
                weight=font_weight(font),
                codepoints=frozenset(cmap),
                data=data,
                font_number=font_number,
                version=get_name(font, NAME_ID_VERSION),
                weight_range=weight_range,
            )
            subfamily = get_name(font, NAME_ID_SUBFAMILY)
        finally:
            font.close()
    except (TTLibError, KeyError, ValueError, AssertionError, EOFError) as e:
        raise FontLoadError(f"Failed to read {source}#{font_number}: {e}") from e

    logger.debug(
        f"Loaded font: {repertoire.family} / {subfamily or repertoire.style.value} / "
        f"{repertoire.version} / {len(repertoire.codepoints)} codepoints"
        f"{' / Variable font' if repertoire.is_variable else ''}"
    )
    return repertoire


def load_repertoires(data: bytes, source: str) -> list[FontRepertoire]:
    """
    Read every face of a font file held in memory.

    Raises:
        FontLoadError: If the data is not a readable font
    """
    try:
        faces = count_faces(data)
    except (TTLibError, KeyError, ValueError, AssertionError, EOFError) as e:
        raise FontLoadError(f"Failed to read {source}: {e}") from e
    return [read_face(data, source, i) for i in range(faces)]


def read_repertoires(path: Path) -> list[FontRepertoire]:
    """
    Read every face of a font file on disk.

    Raises:
        FontLoadError: If the file is missing or not a readable font
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FontLoadError(f"Failed to read {path}: {e}") from e
    logger.info(f"Loading font: (File) {path}")
    return load_repertoires(data, str(path))


def get_font_size_kb(data: bytes) -> float:
    """Get font data size in kilobytes."""
    return len(data) / 1024
