"""Tests for stylesheet emission."""

from pathlib import Path

import pytest

from fontsplit.core.errors import ConfigError
from fontsplit.core.font_io import FontRepertoire
from fontsplit.core.naming import FontStyle
from fontsplit.operations.plan import SubsetBucket
from fontsplit.operations.store import StoreEntry
from fontsplit.operations.stylesheet import (
    StylesheetDocument,
    Webfont,
    css_string,
    css_weight,
    emit_page_stylesheets,
    emit_stylesheet,
    page_file_name,
    page_file_names,
)
from fontsplit.operations.subset import SubsetArtifact
from fontsplit.operations.usage import GlyphUsageSet

A, B, C, D, E = (ord(ch) for ch in "ABCDE")


def uri_for(entry: StoreEntry) -> str:
    return f"/fonts/{entry.file_name}"


def webfont(family="Test Sans", buckets=((A, C), (D, E)), **kwargs) -> Webfont:
    font = FontRepertoire(
        source="test.ttf",
        family=family,
        style=kwargs.get("style", FontStyle.NORMAL),
        weight=kwargs.get("weight", 400),
        codepoints=frozenset(cp for cps in buckets for cp in cps),
        data=family.encode(),
        weight_range=kwargs.get("weight_range"),
    )
    planned = [
        SubsetBucket(i, f"b{i}", i, frozenset(cps)) for i, cps in enumerate(buckets)
    ]
    result = Webfont(font, planned)
    for bucket in planned:
        artifact = SubsetArtifact.create(bucket, f"{family}-{bucket.name}".encode())
        entry = StoreEntry(
            artifact.digest, f"{artifact.digest}.woff2", Path("/dev/null"), 1
        )
        result.subsets.append((artifact, entry))
    return result


def test_one_rule_per_subset():
    document = emit_stylesheet([webfont()], uri_for)
    assert len(document) == 2
    assert [rule.unicode_range for rule in document.rules] == ["U+41, U+43", "U+44-45"]


def test_rules_follow_bucket_order():
    font = webfont()
    font.subsets.reverse()
    document = emit_stylesheet([font], uri_for)
    assert [rule.bucket_index for rule in document.rules] == [0, 1]


def test_render_font_face():
    font = webfont(buckets=((A, B, C),), style=FontStyle.ITALIC, weight=700)
    css = emit_stylesheet([font], uri_for).render()
    artifact, entry = font.subsets[0]
    assert css == (
        "@font-face {\n"
        '    font-family: "Test Sans";\n'
        "    font-style: italic;\n"
        "    font-weight: 700;\n"
        "    font-display: swap;\n"
        "    unicode-range: U+41-43;\n"
        f'    src: url("/fonts/{entry.file_name}") format("woff2");\n'
        "}\n"
    )


def test_render_without_font_display():
    css = emit_stylesheet([webfont()], uri_for, font_display=None).render()
    assert "font-display" not in css


def test_empty_document_renders_nothing():
    assert StylesheetDocument().render() == ""


def test_relevance_filters_rules():
    font = webfont()
    document = emit_stylesheet([font], uri_for, {font.font.key: {1}})
    assert [rule.bucket_index for rule in document.rules] == [1]


def test_relevance_drops_unlisted_fonts():
    document = emit_stylesheet([webfont()], uri_for, {})
    assert len(document) == 0


def test_page_stylesheets_include_only_used_buckets():
    """A page using {A, B} gets the {A, C} rule and not the {D, E} one."""
    usage = [GlyphUsageSet("index.html", frozenset({A, B}))]
    pages = emit_page_stylesheets([webfont()], usage, uri_for)
    assert [rule.unicode_range for rule in pages["index.html"].rules] == ["U+41, U+43"]


def test_page_stylesheets_honor_font_stack():
    sans = webfont("Test Sans")
    serif = webfont("Test Serif")
    usage = [GlyphUsageSet("a.html", frozenset({A}), ("Test Serif",))]
    pages = emit_page_stylesheets([sans, serif], usage, uri_for)
    assert {rule.family for rule in pages["a.html"].rules} == {"Test Serif"}


def test_failed_subsets_are_omitted():
    font = webfont()
    del font.subsets[1]
    assert not font.complete
    document = emit_stylesheet([font], uri_for)
    assert [rule.bucket_index for rule in document.rules] == [0]


def test_css_string_escapes_quotes():
    assert css_string('Say "Hi"') == '"Say \\"Hi\\""'


def test_css_weight_variable_range():
    font = webfont(weight_range=(100, 900)).font
    assert css_weight(font) == "100 900"
    assert css_weight(webfont().font) == "400"


@pytest.mark.parametrize(
    "page, expected",
    [
        ("/", "index.css"),
        ("/docs/intro", "docs/intro.css"),
        ("/docs/intro/", "docs/intro.css"),
        ("about.html", "about.html.css"),
        ("/a b/../c", "a_b/c.css"),
    ],
)
def test_page_file_name(page, expected):
    assert page_file_name(page) == expected


def test_page_file_names_keep_directories_apart():
    names = page_file_names(["/a/b", "/a_b", "/"])
    assert names == {"/a/b": "a/b.css", "/a_b": "a_b.css", "/": "index.css"}


def test_page_file_names_reject_collisions():
    with pytest.raises(ConfigError, match="index.css"):
        page_file_names(["/", "/index"])


def test_page_stylesheet_matches_family_case_insensitively():
    font = webfont(buckets=((A,), (D,)))
    usage = GlyphUsageSet("/p", frozenset({A}), ("test sans",))

    documents = emit_page_stylesheets([font], [usage], uri_for)

    assert [rule.unicode_range for rule in documents["/p"].rules] == ["U+41"]
