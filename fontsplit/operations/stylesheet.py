"""
Stylesheet emission.

Turns stored subsets into @font-face rules, one per subset, each limited by
a unicode-range to exactly its bucket's codepoints.
"""

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from fontsplit.core.errors import ConfigError
from fontsplit.core.font_io import FontRepertoire
from fontsplit.core.ranges import format_unicode_range
from fontsplit.operations.plan import SubsetBucket
from fontsplit.operations.store import StoreEntry
from fontsplit.operations.subset import SubsetArtifact
from fontsplit.operations.usage import GlyphUsageSet, relevant_buckets


@dataclass
class Webfont:
    """A source font with its plan and the subsets that were stored for it."""

    font: FontRepertoire
    buckets: list[SubsetBucket]
    subsets: list[tuple[SubsetArtifact, StoreEntry]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True if every planned bucket was stored."""
        return len(self.subsets) == len(self.buckets)


@dataclass(frozen=True)
class FontFaceRule:
    """One @font-face rule."""

    family: str
    style: str
    weight: str
    unicode_range: str
    src: str
    bucket_index: int
    font_key: tuple[str, str]

    def render(self, font_display: str | None = None) -> str:
        lines = [
            "@font-face {",
            f"    font-family: {css_string(self.family)};",
            f"    font-style: {self.style};",
            f"    font-weight: {self.weight};",
        ]
        if font_display:
            lines.append(f"    font-display: {font_display};")
        lines.append(f"    unicode-range: {self.unicode_range};")
        lines.append(f'    src: url({css_string(self.src)}) format("woff2");')
        lines.append("}")
        return "\n".join(lines)


@dataclass(frozen=True)
class StylesheetDocument:
    """An ordered list of @font-face rules."""

    rules: tuple[FontFaceRule, ...] = ()
    font_display: str | None = "swap"

    def __len__(self) -> int:
        return len(self.rules)

    def render(self) -> str:
        if not self.rules:
            return ""
        return "\n".join(rule.render(self.font_display) for rule in self.rules) + "\n"


def css_string(text: str) -> str:
    """Quote text as a CSS string."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\a ")
    return f'"{escaped}"'


def css_weight(font: FontRepertoire) -> str:
    """font-weight value; variable fonts declare their whole wght range."""
    if font.weight_range is not None and font.weight_range[0] != font.weight_range[1]:
        return f"{font.weight_range[0]} {font.weight_range[1]}"
    return str(font.weight)


def font_face_rules(
    webfont: Webfont, uri_for: Callable[[StoreEntry], str]
) -> list[FontFaceRule]:
    """Rules for every stored subset of a webfont, in bucket order."""
    font = webfont.font
    rules = []
    for artifact, entry in sorted(webfont.subsets, key=lambda s: s[0].bucket.index):
        rules.append(
            FontFaceRule(
                family=font.family,
                style=font.style.value,
                weight=css_weight(font),
                unicode_range=format_unicode_range(artifact.bucket.codepoints),
                src=uri_for(entry),
                bucket_index=artifact.bucket.index,
                font_key=font.key,
            )
        )
    return rules


def emit_stylesheet(
    webfonts: Sequence[Webfont],
    uri_for: Callable[[StoreEntry], str],
    relevance: dict[tuple[str, str], set[int]] | None = None,
    font_display: str | None = "swap",
) -> StylesheetDocument:
    """
    Assemble the stylesheet for a set of webfonts.

    Args:
        webfonts: Fonts with their stored subsets
        uri_for: Resolves a store entry to its public URI
        relevance: Relevant bucket indexes per font key; fonts missing
            from it are dropped. None includes every rule.
        font_display: Optional font-display descriptor

    Returns:
        The stylesheet document
    """
    rules: list[FontFaceRule] = []
    for webfont in webfonts:
        if relevance is not None and webfont.font.key not in relevance:
            continue
        for rule in font_face_rules(webfont, uri_for):
            if relevance is None or rule.bucket_index in relevance[rule.font_key]:
                rules.append(rule)
    return StylesheetDocument(tuple(rules), font_display)


def page_relevance(
    webfonts: Sequence[Webfont], usage: GlyphUsageSet
) -> dict[tuple[str, str], set[int]]:
    """Relevant bucket indexes of each font the page uses, keyed by font key."""
    relevance: dict[tuple[str, str], set[int]] = {}
    for webfont in webfonts:
        if not usage.uses_family(webfont.font.family):
            continue
        relevance.setdefault(webfont.font.key, set()).update(
            relevant_buckets(webfont.buckets, usage)
        )
    return relevance


def emit_page_stylesheets(
    webfonts: Sequence[Webfont],
    usage_sets: Sequence[GlyphUsageSet],
    uri_for: Callable[[StoreEntry], str],
    font_display: str | None = "swap",
) -> dict[str, StylesheetDocument]:
    """Per-page stylesheets holding only the rules each page can use."""
    return {
        usage.page: emit_stylesheet(
            webfonts, uri_for, page_relevance(webfonts, usage), font_display
        )
        for usage in usage_sets
    }


def page_file_name(page: str) -> str:
    """Stylesheet path for a page identifier ("/docs/intro" -> "docs/intro.css")."""
    parts = (
        re.sub(r"[^A-Za-z0-9._-]+", "_", part).strip(".") for part in page.split("/")
    )
    stem = "/".join(part for part in parts if part)
    return f"{stem or 'index'}.css"


def page_file_names(pages: Iterable[str]) -> dict[str, str]:
    """
    Stylesheet path of every page.

    Raises:
        ConfigError: If two pages map to the same path
    """
    names: dict[str, str] = {}
    owners: dict[str, str] = {}
    for page in pages:
        name = page_file_name(page)
        other = owners.setdefault(name, page)
        if other != page:
            raise ConfigError(f"Pages {other!r} and {page!r} would both write {name}")
        names[page] = name
    return names
