"""Tests for naming utilities."""

import pytest

from fontsplit.core.naming import (
    FontStyle,
    extract_name,
    extract_version,
    infer_style,
    infer_weight,
)


@pytest.mark.parametrize(
    "subfamily, weight",
    [
        ("Regular", 400),
        ("Thin", 100),
        ("ExtraLight Italic", 200),
        ("Light", 300),
        ("Medium", 500),
        ("SemiBold", 600),
        ("Bold", 700),
        ("Extra-Bold", 800),
        ("Black Italic", 900),
        ("ExtraBlack", 950),
    ],
)
def test_infer_weight(subfamily, weight):
    assert infer_weight(subfamily) == weight


def test_infer_style():
    assert infer_style("Bold Italic") is FontStyle.ITALIC
    assert infer_style("Oblique") is FontStyle.OBLIQUE
    assert infer_style("Regular") is FontStyle.NORMAL


def test_extract_name():
    """Test extract_name drops non-alphanumerics and truncates."""
    assert extract_name("Noto Sans CJK JP") == "NotoSansCJKJP"
    assert extract_name("A" * 30) == "A" * 20


def test_extract_version():
    assert extract_version("Version 2.013; ttfautohint (v1.8)") == "2.013"
    assert extract_version("1.085") == "1.085"
    assert extract_version("unknown") == ""
