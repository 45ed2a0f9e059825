"""
Reference bucket definitions for subset planning.

Each definition is a named codepoint set with a priority rank; lower ranks
are planned first. Script subsets follow the unicode-range splits used by
Google Fonts, CJK ideographs are split per 4096-codepoint page.

Reference: https://www.unicode.org/charts/
Note: ranges are hex without the U+ prefix, same as pyftsubset.
"""

from dataclasses import dataclass
from functools import cached_property

from fontsplit.core.ranges import parse_ranges


@dataclass(frozen=True)
class ReferenceBucket:
    """A prioritized codepoint set from the reference dataset."""

    name: str
    priority: int
    ranges: tuple[str, ...]

    @cached_property
    def codepoints(self) -> frozenset[int]:
        """Expanded codepoint set."""
        return parse_ranges(self.ranges)


LATIN = (
    "0000-00FF",  # Basic Latin, Latin-1 Supplement
    "0131",
    "0152-0153",
    "02BB-02BC",
    "02C6",
    "02DA",
    "02DC",
    "0304",
    "0308",
    "0329",
    "2000-206F",  # General Punctuation
    "20AC",  # Euro sign
    "2122",
    "2191",
    "2193",
    "2212",
    "2215",
    "FEFF",
    "FFFD",
)

LATIN_EXT = (
    "0100-02BA",
    "02BD-02C5",
    "02C7-02CC",
    "02CE-02D7",
    "02DD-02FF",
    "0304",
    "0308",
    "0329",
    "1D00-1DBF",  # Phonetic Extensions
    "1E00-1E9F",  # Latin Extended Additional
    "1EF2-1EFF",
    "2020",
    "20A0-20AB",  # Currency Symbols
    "20AD-20C0",
    "2113",
    "2C60-2C7F",  # Latin Extended-C
    "A720-A7FF",  # Latin Extended-D
)

VIETNAMESE = (
    "0102-0103",
    "0110-0111",
    "0128-0129",
    "0168-0169",
    "01A0-01A1",
    "01AF-01B0",
    "0300-0301",
    "0303-0304",
    "0308-0309",
    "0323",
    "0329",
    "1EA0-1EF9",
    "20AB",
)

GREEK = (
    "0370-0377",
    "037A-037F",
    "0384-038A",
    "038C",
    "038E-03A1",
    "03A3-03FF",
)

GREEK_EXT = ("1F00-1FFF",)  # Greek Extended

CYRILLIC = (
    "0301",
    "0400-045F",
    "0490-0491",
    "04B0-04B1",
    "2116",
)

CYRILLIC_EXT = (
    "0460-052F",
    "1C80-1C8A",
    "20B4",
    "2DE0-2DFF",  # Cyrillic Extended-A
    "A640-A69F",  # Cyrillic Extended-B
    "FE2E-FE2F",
)

HEBREW = (
    "0307-0308",
    "0590-05FF",
    "200C-2010",
    "20AA",
    "25CC",
    "FB1D-FB4F",
)

ARABIC = (
    "0600-06FF",
    "0750-077F",  # Arabic Supplement
    "0870-088E",
    "0890-0891",
    "0897-08E1",
    "08E3-08FF",
    "200C-200E",
    "2010-2011",
    "204F",
    "2E41",
    "FB50-FDFF",  # Arabic Presentation Forms-A
    "FE70-FE74",
    "FE76-FEFC",
)

DEVANAGARI = (
    "0900-097F",
    "1CD0-1CF9",
    "200C-200D",
    "20A8",
    "20B9",
    "20F0",
    "25CC",
    "A830-A839",
    "A8E0-A8FF",
    "11B00-11B09",
)

THAI = (
    "02D7",
    "0303",
    "0331",
    "0E01-0E5B",
    "200C-200D",
    "25CC",
)

# Symbols and punctuation, kana, fullwidth forms
JAPANESE_KANA = (
    "3000-303F",  # CJK Symbols and Punctuation
    "3041-3096",  # Hiragana (basic)
    "3099-309F",  # Hiragana (combining marks)
    "30A0-30FF",  # Katakana
    "31F0-31FF",  # Katakana Phonetic Extensions
    "FF00-FFEF",  # Halfwidth and Fullwidth Forms
    "1AFF0-1AFFF",  # Kana Extended-B
    "1B000-1B16F",  # Kana Supplement, Kana Extended-A, Small Kana Extension
)

HANGUL = (
    "1100-11FF",  # Hangul Jamo
    "3130-318F",  # Hangul Compatibility Jamo
    "A960-A97F",  # Hangul Jamo Extended-A
    "AC00-D7AF",  # Hangul Syllables
    "D7B0-D7FF",  # Hangul Jamo Extended-B
)

CJK_EXTENDED = (
    "2E80-2FDF",  # CJK Radicals Supplement, Kangxi Radicals
    "3400-4DBF",  # CJK Unified Ideographs Extension A
    "F900-FAFF",  # CJK Compatibility Ideographs
    "2F800-2FA1F",  # CJK Compatibility Ideographs Supplement
)

CJK_SUPPLEMENTARY = (
    "20000-2A6DF",  # CJK Unified Ideographs Extension B
    "2A700-2B739",  # CJK Unified Ideographs Extension C
    "2B740-2B81D",  # CJK Unified Ideographs Extension D
    "2B820-2CEA1",  # CJK Unified Ideographs Extension E
    "2CEB0-2EBE0",  # CJK Unified Ideographs Extension F
    "2EBF0-2EE5D",  # CJK Unified Ideographs Extension I
    "30000-3134A",  # CJK Unified Ideographs Extension G
    "31350-323AF",  # CJK Unified Ideographs Extension H
)

SYMBOLS = (
    "2100-214F",  # Letterlike Symbols
    "2150-218F",  # Number Forms
    "2190-21FF",  # Arrows
    "2300-23FF",  # Miscellaneous Technical
    "2460-24FF",  # Enclosed Alphanumerics
    "2500-257F",  # Box Drawing
    "2580-259F",  # Block Elements
    "25A0-25FF",  # Geometric Shapes
    "2600-26FF",  # Miscellaneous Symbols
    "2700-27BF",  # Dingbats
    "2B00-2BFF",  # Miscellaneous Symbols and Arrows
)

MATH = (
    "2200-22FF",  # Mathematical Operators
    "27C0-27EF",  # Miscellaneous Mathematical Symbols-A
    "2980-29FF",  # Miscellaneous Mathematical Symbols-B
    "2A00-2AFF",  # Supplemental Mathematical Operators
    "1D400-1D7FF",  # Mathematical Alphanumeric Symbols
)

EMOJI = (
    "1F000-1F02F",  # Mahjong Tiles
    "1F0A0-1F0FF",  # Playing Cards
    "1F300-1F5FF",  # Miscellaneous Symbols and Pictographs
    "1F600-1F64F",  # Emoticons
    "1F680-1F6FF",  # Transport and Map Symbols
    "1F900-1F9FF",  # Supplemental Symbols and Pictographs
    "1FA70-1FAFF",  # Symbols and Pictographs Extended-A
)


def _cjk_unified_pages() -> list[tuple[str, tuple[str, ...]]]:
    """CJK Unified Ideographs (4E00-9FFF) split into 4096-codepoint pages."""
    pages = []
    start = 0x4E00
    while start <= 0x9FFF:
        end = min((start | 0xFFF), 0x9FFF)
        pages.append((f"cjk-{start:04x}", (f"{start:04X}-{end:04X}",)))
        start = end + 1
    return pages


_SCRIPT_BUCKETS: list[tuple[str, tuple[str, ...]]] = [
    ("latin", LATIN),
    ("latin-ext", LATIN_EXT),
    ("vietnamese", VIETNAMESE),
    ("cyrillic", CYRILLIC),
    ("cyrillic-ext", CYRILLIC_EXT),
    ("greek", GREEK),
    ("greek-ext", GREEK_EXT),
    ("hebrew", HEBREW),
    ("arabic", ARABIC),
    ("devanagari", DEVANAGARI),
    ("thai", THAI),
    ("japanese-kana", JAPANESE_KANA),
    ("hangul", HANGUL),
    *_cjk_unified_pages(),
    ("cjk-ext", CJK_EXTENDED),
    ("cjk-supplementary", CJK_SUPPLEMENTARY),
    ("symbols", SYMBOLS),
    ("math", MATH),
    ("emoji", EMOJI),
]

# Bundled reference dataset, in planning order
REFERENCE_BUCKETS = [
    ReferenceBucket(name, priority, ranges)
    for priority, (name, ranges) in enumerate(_SCRIPT_BUCKETS)
]
