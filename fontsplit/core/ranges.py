"""
Codepoint range helpers.

Converts between hex range strings ("0370-0377"), codepoint sets, and the
CSS unicode-range syntax.
"""

from collections.abc import Iterable

MAX_CODEPOINT = 0x10FFFF


def parse_range(spec: str) -> range:
    """
    Parse one hex range string.

    Accepts "0041", "0041-005A" and an optional "U+" prefix.

    Raises:
        ValueError: If the string is not a valid range
    """
    text = spec.strip()
    if text[:2].upper() == "U+":
        text = text[2:]
    start_text, _, end_text = text.partition("-")
    start = int(start_text, 16)
    end = int(end_text, 16) if end_text else start
    if start > end:
        raise ValueError(f"Inverted range: {spec}")
    if start < 0 or end > MAX_CODEPOINT:
        raise ValueError(f"Range outside Unicode: {spec}")
    return range(start, end + 1)


def parse_ranges(specs: Iterable[str]) -> frozenset[int]:
    """Expand hex range strings into a codepoint set."""
    codepoints: set[int] = set()
    for spec in specs:
        codepoints.update(parse_range(spec))
    return frozenset(codepoints)


def to_ranges(codepoints: Iterable[int]) -> list[tuple[int, int]]:
    """
    Collapse codepoints into the minimal list of inclusive ranges.

    Ranges are sorted ascending and never touch or overlap.
    """
    ordered = sorted(set(codepoints))
    if not ordered:
        return []

    ranges = []
    start = prev = ordered[0]
    for cp in ordered[1:]:
        if cp != prev + 1:
            ranges.append((start, prev))
            start = cp
        prev = cp
    ranges.append((start, prev))
    return ranges


def format_unicode_range(codepoints: Iterable[int]) -> str:
    """Serialize codepoints as a CSS unicode-range value."""
    parts = []
    for start, end in to_ranges(codepoints):
        if start == end:
            parts.append(f"U+{start:X}")
        else:
            parts.append(f"U+{start:X}-{end:X}")
    return ", ".join(parts)


def format_hex_ranges(codepoints: Iterable[int]) -> str:
    """Serialize codepoints in pyftsubset's --unicodes syntax."""
    parts = []
    for start, end in to_ranges(codepoints):
        if start == end:
            parts.append(f"{start:04X}")
        else:
            parts.append(f"{start:04X}-{end:04X}")
    return ",".join(parts)
