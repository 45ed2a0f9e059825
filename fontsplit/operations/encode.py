"""
WOFF2 encoding of subset fonts.

Output must be byte-for-byte reproducible: the store names artifacts by the
hash of these bytes, so any nondeterminism would defeat deduplication.
"""

from io import BytesIO
from typing import Protocol

import fontTools
from fontTools.ttLib.woff2 import WOFF2FlavorData

from fontsplit.config.settings import WOFF2_QUALITY
from fontsplit.core.errors import CompressionError
from fontsplit.core.font_io import open_face

# glyf and loca can only be transformed together
DEFAULT_TRANSFORMED_TABLES = ("glyf", "loca")


class Compressor(Protocol):
    """A webfont wire-format codec."""

    @property
    def signature(self) -> str:
        """Identifies the codec and its parameters for build memoization."""
        ...

    def compress(self, font_data: bytes) -> bytes:
        """Encode an sfnt into the wire format."""
        ...


class Woff2Compressor:
    """WOFF2 encoding through fontTools (brotli at quality 11)."""

    def __init__(self, transformed_tables: tuple[str, ...] = DEFAULT_TRANSFORMED_TABLES):
        self.transformed_tables = tuple(sorted(transformed_tables))

    @property
    def signature(self) -> str:
        return (
            f"woff2/{fontTools.version}/q{WOFF2_QUALITY}"
            f"/transform={','.join(self.transformed_tables)}"
        )

    def compress(self, font_data: bytes) -> bytes:
        font = open_face(font_data)
        try:
            font.flavor = "woff2"
            font.flavorData = WOFF2FlavorData(
                transformedTables=list(self.transformed_tables)
            )
            buffer = BytesIO()
            font.save(buffer)
            return buffer.getvalue()
        finally:
            font.close()


def encode_subset(font_data: bytes, compressor: Compressor) -> bytes:
    """
    Encode one subset font.

    Raises:
        CompressionError: On any codec failure
    """
    try:
        encoded = compressor.compress(font_data)
    except CompressionError:
        raise
    except Exception as e:
        raise CompressionError(f"WOFF2 compression failed: {e}") from e
    if not encoded:
        raise CompressionError("WOFF2 compression produced no data")
    return encoded
