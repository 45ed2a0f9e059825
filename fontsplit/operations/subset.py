"""
Subset building.

Cuts one self-contained font per bucket, containing exactly the bucket's
codepoints, and packages it with its WOFF2 encoding.
"""

import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Protocol

import fontTools
from fontTools import subset
from fontTools.ttLib import TTLibError

from fontsplit.core.errors import EmptySubsetError, SubsetEngineError, SubsettingError
from fontsplit.core.font_io import FontRepertoire, open_face
from fontsplit.core.ranges import format_hex_ranges
from fontsplit.operations.encode import Compressor, encode_subset
from fontsplit.operations.plan import SubsetBucket
from fontsplit.operations.store import content_hash
from fontsplit.utils.logging import logger
from fontsplit.utils.subprocess import run_pyftsubset

# Tables that only carry metadata or hinting and never affect rendering
TABLES_TO_DROP = ["DSIG", "hdmx", "LTSH", "VDMX", "PCLT"]


class Subsetter(Protocol):
    """A glyph-subsetting engine."""

    @property
    def signature(self) -> str:
        """Identifies the engine and its options for build memoization."""
        ...

    def subset(
        self, font_data: bytes, font_number: int, codepoints: Iterable[int]
    ) -> bytes:
        """Return an sfnt containing exactly codepoints."""
        ...


class FontToolsSubsetter:
    """In-process subsetting with fontTools.subset."""

    def __init__(self, *, keep_layout: bool = True, keep_hinting: bool = False):
        self.keep_layout = keep_layout
        self.keep_hinting = keep_hinting

    @property
    def signature(self) -> str:
        return (
            f"fonttools-subset/{fontTools.version}"
            f"/layout={int(self.keep_layout)}/hinting={int(self.keep_hinting)}"
        )

    def options(self) -> subset.Options:
        options = subset.Options()
        options.hinting = self.keep_hinting
        options.desubroutinize = True
        options.layout_features = ["*"] if self.keep_layout else []
        options.notdef_outline = True
        options.recalc_timestamp = False
        options.drop_tables = sorted(set(options.drop_tables) | set(TABLES_TO_DROP))
        return options

    def subset(
        self, font_data: bytes, font_number: int, codepoints: Iterable[int]
    ) -> bytes:
        font = open_face(font_data, font_number)
        try:
            subsetter = subset.Subsetter(options=self.options())
            subsetter.populate(unicodes=sorted(codepoints))
            subsetter.subset(font)
            font.flavor = None
            buffer = BytesIO()
            font.save(buffer)
            return buffer.getvalue()
        finally:
            font.close()


class PyftsubsetSubsetter:
    """Subsetting through the pyftsubset command."""

    @property
    def signature(self) -> str:
        return f"pyftsubset/{fontTools.version}"

    def subset(
        self, font_data: bytes, font_number: int, codepoints: Iterable[int]
    ) -> bytes:
        with tempfile.TemporaryDirectory(prefix="fontsplit-") as tmp:
            input_font = Path(tmp) / "input.ttf"
            output_file = Path(tmp) / "output.ttf"
            input_font.write_bytes(font_data)
            run_pyftsubset(
                input_font,
                output_file,
                format_hex_ranges(codepoints),
                font_number=font_number,
                exit_on_error=False,
            )
            return output_file.read_bytes()


def build_subset(
    repertoire: FontRepertoire, bucket: SubsetBucket, subsetter: Subsetter
) -> bytes:
    """
    Run the subsetting engine for one bucket.

    Returns:
        sfnt bytes covering exactly the bucket

    Raises:
        SubsetEngineError: If the engine fails
        EmptySubsetError: If the result has no glyph for the bucket
    """
    try:
        data = subsetter.subset(
            repertoire.data, repertoire.font_number, bucket.codepoints
        )
    except SubsettingError:
        raise
    except Exception as e:
        raise SubsetEngineError(
            f"{repertoire.label}/{bucket.name}: subsetting failed: {e}"
        ) from e

    try:
        font = open_face(data)
        try:
            glyph_count = len(font.getGlyphOrder())
            cmap = font.getBestCmap() or {}
        finally:
            font.close()
    except (TTLibError, KeyError, ValueError, AssertionError, EOFError) as e:
        raise SubsetEngineError(
            f"{repertoire.label}/{bucket.name}: engine produced an unreadable font: {e}"
        ) from e

    if glyph_count <= 1 or not cmap:
        raise EmptySubsetError(
            f"{repertoire.label}/{bucket.name}: subset has no glyphs "
            f"({len(bucket)} codepoints requested)"
        )
    return data


@dataclass(frozen=True)
class SubsetArtifact:
    """A bucket's subset font and its WOFF2 encoding."""

    bucket: SubsetBucket
    woff2_data: bytes = field(repr=False)
    digest: str
    font_data: bytes | None = field(default=None, repr=False)  # None when memoized

    @classmethod
    def create(
        cls, bucket: SubsetBucket, woff2_data: bytes, font_data: bytes | None = None
    ) -> "SubsetArtifact":
        return cls(bucket, woff2_data, content_hash(woff2_data), font_data)


def build_artifact(
    repertoire: FontRepertoire,
    bucket: SubsetBucket,
    subsetter: Subsetter,
    compressor: Compressor,
) -> SubsetArtifact:
    """
    Subset and encode one bucket.

    Raises:
        SubsettingError: If the subsetting step fails
        EncodingError: If the compression step fails
    """
    logger.debug(
        f"Encoding subset '{bucket.name}' of {repertoire.label} "
        f"with {len(bucket)} codepoints"
    )
    font_data = build_subset(repertoire, bucket, subsetter)
    woff2_data = encode_subset(font_data, compressor)
    return SubsetArtifact.create(bucket, woff2_data, font_data)
