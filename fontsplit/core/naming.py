"""
Name table helpers: style and weight inference, display labels.
"""

from enum import Enum

from fontTools.ttLib import TTFont

# Name table IDs
NAME_ID_FAMILY = 1
NAME_ID_SUBFAMILY = 2
NAME_ID_VERSION = 5
NAME_ID_TYPOGRAPHIC_FAMILY = 16
NAME_ID_TYPOGRAPHIC_SUBFAMILY = 17

# OS/2 fsSelection bits
FS_SELECTION_ITALIC = 1 << 0
FS_SELECTION_OBLIQUE = 1 << 9


class FontStyle(str, Enum):
    """CSS font-style values."""

    NORMAL = "normal"
    ITALIC = "italic"
    OBLIQUE = "oblique"


# Checked in order; "extrabold" must match before "bold"
WEIGHT_KEYWORDS = [
    (("thin", "hairline"), 100),
    (("extralight", "extra light", "ultralight", "ultra light"), 200),
    (("semilight", "semi light", "light"), 300),
    (("medium",), 500),
    (("semibold", "semi bold", "demibold", "demi bold"), 600),
    (("extrabold", "extra bold", "ultrabold", "ultra bold"), 800),
    (("extrablack", "extra black", "ultrablack", "ultra black"), 950),
    (("black", "heavy"), 900),
    (("bold",), 700),
]


def infer_style(subfamily: str) -> FontStyle:
    """Infer the CSS style from a subfamily name such as "Bold Italic"."""
    name = subfamily.lower().replace("-", " ")
    if "italic" in name:
        return FontStyle.ITALIC
    if "oblique" in name:
        return FontStyle.OBLIQUE
    return FontStyle.NORMAL


def infer_weight(subfamily: str) -> int:
    """Infer a numeric CSS weight from a subfamily name."""
    name = subfamily.lower().replace("-", " ")
    for keywords, weight in WEIGHT_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return weight
    return 400


def get_name(font: TTFont, *name_ids: int) -> str:
    """Return the first non-empty name record among name_ids."""
    if "name" not in font:
        return ""
    for name_id in name_ids:
        value = font["name"].getDebugName(name_id)
        if value:
            return value.strip()
    return ""


def font_style(font: TTFont) -> FontStyle:
    """Style from OS/2 fsSelection, falling back to the subfamily name."""
    if "OS/2" in font:
        selection = font["OS/2"].fsSelection
        if selection & FS_SELECTION_OBLIQUE:
            return FontStyle.OBLIQUE
        if selection & FS_SELECTION_ITALIC:
            return FontStyle.ITALIC
    subfamily = get_name(font, NAME_ID_TYPOGRAPHIC_SUBFAMILY, NAME_ID_SUBFAMILY)
    return infer_style(subfamily)


def font_weight(font: TTFont) -> int:
    """Weight from OS/2 usWeightClass, falling back to the subfamily name."""
    if "OS/2" in font and font["OS/2"].usWeightClass:
        return int(font["OS/2"].usWeightClass)
    subfamily = get_name(font, NAME_ID_TYPOGRAPHIC_SUBFAMILY, NAME_ID_SUBFAMILY)
    return infer_weight(subfamily)


def extract_name(text: str, limit: int = 20) -> str:
    """Alphanumeric characters of text, truncated to limit."""
    return "".join(ch for ch in text if ch.isalnum())[:limit]


def extract_version(text: str, limit: int = 20) -> str:
    """Numeric part of a version string ("Version 2.013; ttfautohint" -> "2.013")."""
    if text.lower().startswith("version "):
        text = text[len("version ") :]
    out = []
    for ch in text:
        if not (ch.isdigit() or ch == "."):
            break
        out.append(ch)
    return "".join(out[:limit]).strip(".")
