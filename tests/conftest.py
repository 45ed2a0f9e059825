"""Shared pytest fixtures."""

from io import BytesIO

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from fontsplit.core.font_io import FontRepertoire, load_repertoires
from fontsplit.core.naming import FontStyle
from fontsplit.operations.store import ContentStore


def glyph_name(codepoint: int) -> str:
    return f"uni{codepoint:04X}" if codepoint <= 0xFFFF else f"u{codepoint:05X}"


def _box():
    pen = TTGlyphPen(None)
    pen.moveTo((100, 0))
    pen.lineTo((100, 700))
    pen.lineTo((500, 700))
    pen.lineTo((500, 0))
    pen.closePath()
    return pen.glyph()


def build_font(
    codepoints,
    family: str = "Test Sans",
    style: str = "Regular",
    weight: int = 400,
    italic: bool = False,
) -> bytes:
    """Build a small TrueType font with one box glyph per codepoint."""
    cmap = {cp: glyph_name(cp) for cp in sorted(set(codepoints))}
    glyph_order = [".notdef"] + list(cmap.values())

    fb = FontBuilder(1000, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(cmap)
    fb.setupGlyf({name: _box() for name in glyph_order})
    fb.setupHorizontalMetrics({name: (600, 100) for name in glyph_order})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": family, "styleName": style})
    fb.setupOS2(
        usWeightClass=weight,
        fsSelection=0x01 if italic else 0x40,
        sTypoAscender=800,
        sTypoDescender=-200,
        usWinAscent=800,
        usWinDescent=200,
    )
    fb.setupPost()
    # fixed timestamps keep identical inputs byte-identical
    fb.updateHead(created=0, modified=0)
    fb.font.recalcTimestamp = False

    buffer = BytesIO()
    fb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_font():
    """Factory for in-memory TrueType font data."""
    return build_font


@pytest.fixture
def make_repertoire():
    """Factory for repertoires backed by a real font."""

    def factory(codepoints, **kwargs) -> FontRepertoire:
        return load_repertoires(build_font(codepoints, **kwargs), "test.ttf")[0]

    return factory


@pytest.fixture
def fake_repertoire():
    """Factory for repertoires that only carry coverage (no usable font data)."""

    def factory(codepoints, family: str = "Test Sans") -> FontRepertoire:
        return FontRepertoire(
            source="fake.ttf",
            family=family,
            style=FontStyle.NORMAL,
            weight=400,
            codepoints=frozenset(codepoints),
            data=family.encode(),
        )

    return factory


@pytest.fixture
def store(tmp_path):
    """An isolated content store."""
    with ContentStore.open(tmp_path / "store") as store:
        yield store
