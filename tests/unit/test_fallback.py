"""Tests for fallback font resolution."""

import pytest

from fontsplit.config.paths import FALLBACK_FONT_NAME
from fontsplit.core.errors import FontLoadError
from fontsplit.operations.fallback import FallbackResolver, assigned_codepoints

A, B, C = (ord(ch) for ch in "ABC")
PRIVATE_USE = 0xE000


def test_assigned_codepoints_excludes_non_characters():
    assigned = assigned_codepoints()
    assert A in assigned
    assert PRIVATE_USE not in assigned
    assert 0xD800 not in assigned


def test_repertoires_do_not_overlap(fake_repertoire):
    first = fake_repertoire({A, B, PRIVATE_USE}, family="Noto Sans")
    second = fake_repertoire({B, C}, family="Noto Sans Symbols")

    repertoires = FallbackResolver([first, second]).repertoires()

    assert [r.family for r in repertoires] == [FALLBACK_FONT_NAME] * 2
    assert [r.codepoints for r in repertoires] == [{A, B}, {C}]
    assert repertoires[0].digest == first.digest


def test_sources_adding_nothing_are_skipped(fake_repertoire):
    first = fake_repertoire({A, B}, family="Noto Sans")
    redundant = fake_repertoire({A}, family="Noto Sans Math")
    assert len(FallbackResolver([first, redundant]).repertoires()) == 1


def test_resolve_font_stack(fake_repertoire):
    fallback = fake_repertoire({C}, family="Noto Sans")
    sans = fake_repertoire({A}, family="Test Sans")
    serif = fake_repertoire({B}, family="Test Serif")
    resolver = FallbackResolver([fallback])

    resolved = resolver.resolve_font_stack(
        ["Test Serif", "Missing", FALLBACK_FONT_NAME, "Test Serif"], [sans, serif]
    )

    assert [r.family for r in resolved] == ["Test Serif", FALLBACK_FONT_NAME]


def test_resolve_font_stack_ignores_case(fake_repertoire):
    fallback = fake_repertoire({C}, family="Noto Sans")
    sans = fake_repertoire({A}, family="Test Sans")
    resolver = FallbackResolver([fallback])

    resolved = resolver.resolve_font_stack(
        ["TEST SANS", FALLBACK_FONT_NAME.upper()], [sans]
    )

    assert [r.family for r in resolved] == ["Test Sans", FALLBACK_FONT_NAME]


def test_from_directory_requires_download(tmp_path):
    with pytest.raises(FontLoadError):
        FallbackResolver.from_directory(tmp_path)
