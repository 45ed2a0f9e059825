"""
End-to-end pipeline tests.

Real fontTools subsetting and WOFF2 encoding on fonts built in memory.
"""

import shutil
from io import BytesIO

import pytest
from fontTools.ttLib import TTFont

from fontsplit.config.paths import FALLBACK_FONT_NAME
from fontsplit.config.settings import Mode, PipelineConfig
from fontsplit.config.unicode_ranges import ReferenceBucket
from fontsplit.core.errors import EmptySubsetError, PipelineError, SubsetEngineError
from fontsplit.operations.encode import Woff2Compressor, encode_subset
from fontsplit.operations.fallback import FallbackResolver
from fontsplit.operations.plan import SubsetBucket, plan_subsets
from fontsplit.operations.store import ContentStore
from fontsplit.operations.subset import (
    FontToolsSubsetter,
    PyftsubsetSubsetter,
    build_artifact,
    build_subset,
)
from fontsplit.operations.usage import GlyphUsageSet
from fontsplit.pipeline.runner import run_pipeline
from fontsplit.pipeline.validate import decode_coverage, validate_result, validate_store

LATIN = ReferenceBucket("latin", 0, ("0041-005A",))
DIGITS = ReferenceBucket("digits", 1, ("0030-0039",))
EURO = 0x20AC

COVERAGE = (
    set(range(0x41, 0x5B))
    | set(range(0x30, 0x3A))
    | set(range(0x391, 0x3A0))
    | {EURO, 0xE000, 0xE001}
)


class FailingSubsetter(FontToolsSubsetter):
    """Rejects any bucket containing one codepoint."""

    def __init__(self, poison: int):
        super().__init__()
        self.poison = poison

    def subset(self, font_data, font_number, codepoints):
        if self.poison in set(codepoints):
            raise RuntimeError("engine crashed")
        return super().subset(font_data, font_number, codepoints)


def config(tmp_path, **kwargs) -> PipelineConfig:
    return PipelineConfig(store_dir=tmp_path / "store", workers=2, **kwargs)


def test_round_trip_coverage(tmp_path, make_repertoire):
    """Every stored subset decodes to exactly its bucket's codepoints."""
    font = make_repertoire(COVERAGE)
    cfg = config(tmp_path)

    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline([font], cfg, store)

    assert result.ok
    [webfont] = result.webfonts
    assert webfont.complete
    for artifact, entry in webfont.subsets:
        assert decode_coverage(entry.path.read_bytes()) == artifact.bucket.codepoints
    assert validate_result(result)
    assert len(result.stylesheet()) == len(webfont.buckets)


def test_subset_is_woff2(tmp_path, make_repertoire):
    cfg = config(tmp_path)
    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline([make_repertoire(COVERAGE)], cfg, store)

    artifact, _ = result.webfonts[0].subsets[0]
    font = TTFont(BytesIO(artifact.woff2_data))
    assert font.flavor == "woff2"
    assert artifact.woff2_data[:4] == b"wOF2"


def test_partial_failure_keeps_surviving_rule(tmp_path, make_repertoire):
    """A failed bucket is reported while the other bucket's rule is still emitted."""
    font = make_repertoire({ord("A"), ord("B"), EURO})
    cfg = config(tmp_path)

    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline(
            [font], cfg, store, reference=[LATIN], subsetter=FailingSubsetter(EURO)
        )

    assert not result.ok
    [diagnostic] = result.diagnostics
    assert diagnostic.bucket == "misc1"
    assert isinstance(diagnostic.error, SubsetEngineError)

    document = result.stylesheet()
    assert [rule.unicode_range for rule in document.rules] == ["U+41-42"]


def test_abandon_font_on_failure(tmp_path, make_repertoire):
    good = make_repertoire({ord("A")}, family="Good Sans")
    bad = make_repertoire({ord("A"), EURO}, family="Bad Sans")
    cfg = config(tmp_path, abandon_font_on_failure=True)

    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline(
            [good, bad], cfg, store, reference=[LATIN], subsetter=FailingSubsetter(EURO)
        )

    assert len(result.diagnostics) == 1
    assert {rule.family for rule in result.stylesheet().rules} == {"Good Sans"}


def test_fail_fast(tmp_path, make_repertoire):
    font = make_repertoire({ord("A"), EURO})
    cfg = config(tmp_path, fail_fast=True)

    with ContentStore.open(cfg.store_dir) as store:
        with pytest.raises(PipelineError):
            run_pipeline(
                [font], cfg, store, reference=[LATIN], subsetter=FailingSubsetter(EURO)
            )


def test_planning_error_is_reported(tmp_path, make_repertoire):
    font = make_repertoire({ord("A")})
    cfg = config(tmp_path)
    reference = [LATIN, ReferenceBucket("latin", 1, ("0030",))]

    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline([font], cfg, store, reference=reference)

    [diagnostic] = result.diagnostics
    assert diagnostic.bucket is None
    assert result.webfonts == []


def test_second_run_reuses_store(tmp_path, make_repertoire):
    font = make_repertoire(COVERAGE)
    cfg = config(tmp_path)

    with ContentStore.open(cfg.store_dir) as store:
        first = run_pipeline([font], cfg, store)
        first_css = first.stylesheet().render()
        files = sorted(p.name for p in cfg.store_dir.glob("*.woff2"))

    with ContentStore.open(cfg.store_dir) as store:
        second = run_pipeline([font], cfg, store)
        assert store.writes == 0

    assert second.reused == first.built
    assert second.built == 0
    assert second.stylesheet().render() == first_css
    assert sorted(p.name for p in cfg.store_dir.glob("*.woff2")) == files


def test_serial_and_parallel_builds_match(tmp_path, make_repertoire):
    """Worker processes store the same files and rules as an in-process build."""
    font = make_repertoire(COVERAGE)
    runs = {}
    for parallel in (True, False):
        cfg = config(tmp_path / str(parallel), parallel=parallel)
        with ContentStore.open(cfg.store_dir) as store:
            result = run_pipeline([font], cfg, store)
        assert result.ok
        assert result.built == len(result.webfonts[0].buckets)
        runs[parallel] = (
            sorted(p.name for p in cfg.store_dir.glob("*.woff2")),
            result.stylesheet().render(),
        )

    assert runs[True] == runs[False]


def test_preload_from_config(tmp_path, make_repertoire):
    font = make_repertoire({ord("A"), ord("0"), EURO})
    cfg = config(tmp_path, preload=frozenset({EURO}))

    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline([font], cfg, store, reference=[LATIN, DIGITS])

    assert result.ok
    [webfont] = result.webfonts
    assert [bucket.name for bucket in webfont.buckets] == ["latin", "digits"]
    assert webfont.buckets[0].codepoints == {ord("A"), EURO}
    assert validate_result(result)


def test_identical_fonts_share_files(tmp_path, make_font):
    """Two sources with the same glyphs for a bucket produce one stored file."""
    from fontsplit.core.font_io import load_repertoires

    [a] = load_repertoires(make_font(range(0x41, 0x5B)), "a.ttf")
    [b] = load_repertoires(make_font(range(0x41, 0x5B)), "b.ttf")
    cfg = config(tmp_path)

    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline([a, b], cfg, store, reference=[LATIN])
        assert store.writes == 1

    entries = [entry.hash for webfont in result.webfonts for _, entry in webfont.subsets]
    assert len(set(entries)) == 1


def test_encoding_is_deterministic(make_repertoire):
    font = make_repertoire(COVERAGE)
    bucket = plan_subsets(font, [LATIN, DIGITS])[0]
    subsetter = FontToolsSubsetter()
    compressor = Woff2Compressor()

    first = build_artifact(font, bucket, subsetter, compressor)
    second = build_artifact(font, bucket, subsetter, compressor)

    assert first.woff2_data == second.woff2_data
    assert first.digest == second.digest
    assert encode_subset(first.font_data, compressor) == first.woff2_data


def test_empty_subset_raises(make_repertoire):
    font = make_repertoire({ord("A")})
    bucket = SubsetBucket(0, "cjk", 0, frozenset({0x5000}))
    with pytest.raises(EmptySubsetError):
        build_subset(font, bucket, FontToolsSubsetter())


def test_static_site_pages(tmp_path, make_repertoire):
    font = make_repertoire(COVERAGE)
    cfg = config(tmp_path, mode=Mode.STATIC_SITE)
    usage = [
        GlyphUsageSet.from_text("/", "HELLO"),
        GlyphUsageSet.from_text("/prices", "42€"),
        GlyphUsageSet.from_text("/other", "HI", ["Other Font"]),
    ]

    with ContentStore.open(cfg.store_dir, "/fonts") as store:
        result = run_pipeline(
            [font], cfg, store, reference=[LATIN, DIGITS], usage=usage
        )

    pages = result.page_stylesheets()
    assert [r.unicode_range for r in pages["/"].rules] == ["U+41-5A"]
    assert len(pages["/prices"]) == 2
    assert len(pages["/other"]) == 0
    assert all(r.src.startswith("/fonts/") for r in pages["/prices"].rules)


def test_fallback_fonts_are_built(tmp_path, make_repertoire):
    noto = make_repertoire({ord("A"), EURO, 0xE000}, family="Noto Sans")
    main = make_repertoire({ord("A")}, family="Test Sans")
    cfg = config(tmp_path)

    with ContentStore.open(cfg.store_dir) as store:
        result = run_pipeline(
            [main], cfg, store, reference=[LATIN], fallback=FallbackResolver([noto])
        )

    assert result.ok
    families = [rule.family for rule in result.stylesheet().rules]
    assert families == ["Test Sans", FALLBACK_FONT_NAME, FALLBACK_FONT_NAME]
    fallback_ranges = {
        rule.unicode_range
        for rule in result.stylesheet().rules
        if rule.family == FALLBACK_FONT_NAME
    }
    assert fallback_ranges == {"U+41", "U+20AC"}


def test_validate_store(tmp_path, make_repertoire):
    cfg = config(tmp_path)
    with ContentStore.open(cfg.store_dir) as store:
        run_pipeline([make_repertoire(COVERAGE)], cfg, store)
        assert validate_store(store)

        entry = next(store.entries())
        entry.path.write_bytes(b"corrupt")
        assert not validate_store(store)


@pytest.mark.skipif(shutil.which("pyftsubset") is None, reason="pyftsubset not on PATH")
def test_pyftsubset_engine(make_repertoire):
    font = make_repertoire(COVERAGE)
    bucket = plan_subsets(font, [LATIN])[0]
    artifact = build_artifact(font, bucket, PyftsubsetSubsetter(), Woff2Compressor())
    assert decode_coverage(artifact.woff2_data) == bucket.codepoints
