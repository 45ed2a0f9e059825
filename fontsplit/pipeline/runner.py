"""
Pipeline orchestration.

Plans every font, builds every (font, bucket) unit missing from the store on
a process pool, stores the results and assembles the stylesheets.
"""

from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Executor, Future, ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import partial

from fontsplit.config.settings import PipelineConfig
from fontsplit.config.unicode_ranges import REFERENCE_BUCKETS, ReferenceBucket
from fontsplit.core.errors import (
    EncodingError,
    PipelineError,
    PlanningError,
    StoreError,
    SubsettingError,
)
from fontsplit.core.font_io import FontRepertoire, get_font_size_kb
from fontsplit.operations.encode import Compressor, Woff2Compressor
from fontsplit.operations.fallback import FallbackResolver
from fontsplit.operations.plan import SubsetBucket, plan_subsets
from fontsplit.operations.store import ContentStore, StoreEntry, build_key
from fontsplit.operations.stylesheet import (
    StylesheetDocument,
    Webfont,
    emit_page_stylesheets,
    emit_stylesheet,
)
from fontsplit.operations.subset import (
    FontToolsSubsetter,
    SubsetArtifact,
    Subsetter,
    build_artifact,
)
from fontsplit.operations.usage import GlyphUsageSet
from fontsplit.utils.logging import logger


@dataclass(frozen=True)
class Diagnostic:
    """A unit of work that failed."""

    font: str
    bucket: str | None  # None when the whole font failed
    error: Exception

    def __str__(self) -> str:
        where = f"{self.font}/{self.bucket}" if self.bucket else self.font
        return f"{where}: {self.error}"


@dataclass
class PipelineResult:
    """Everything a run produced."""

    webfonts: list[Webfont]
    store: ContentStore
    config: PipelineConfig
    usage: list[GlyphUsageSet] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    built: int = 0
    reused: int = 0

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def stylesheet(self) -> StylesheetDocument:
        """One stylesheet with a rule for every stored subset."""
        return emit_stylesheet(
            self.webfonts, self.store.uri_for, font_display=self.config.font_display
        )

    def page_stylesheets(self) -> dict[str, StylesheetDocument]:
        """Per-page stylesheets restricted to the subsets each page renders."""
        return emit_page_stylesheets(
            self.webfonts, self.usage, self.store.uri_for, self.config.font_display
        )


def check_font_stacks(
    usage: Sequence[GlyphUsageSet],
    fonts: Sequence[FontRepertoire],
    resolver: FallbackResolver,
) -> None:
    """Warn about families named by a page that no loaded font provides."""
    for usage_set in usage:
        if usage_set.font_stack is None:
            continue
        resolved = resolver.resolve_font_stack(usage_set.font_stack, fonts)
        if not resolved:
            logger.warning(f"Page {usage_set.page} uses none of the loaded fonts")


@dataclass(frozen=True)
class BuildUnit:
    """One (font, bucket) pair with the key its artifact is stored under."""

    number: int  # index into PipelineResult.webfonts
    font: FontRepertoire
    bucket: SubsetBucket
    key: str


def _reuse(
    store: ContentStore, unit: BuildUnit
) -> tuple[SubsetArtifact, StoreEntry] | None:
    """Artifact stored by an earlier build of the same unit, if any."""
    entry = store.lookup(unit.key)
    if entry is None:
        return None
    logger.debug(
        f"Reusing subset '{unit.bucket.name}' of {unit.font.label}: {entry.file_name}"
    )
    return SubsetArtifact.create(unit.bucket, store.read(entry)), entry


def _serial_builds(
    units: Sequence[BuildUnit], subsetter: Subsetter, compressor: Compressor
) -> Iterator[tuple[BuildUnit, Callable[[], SubsetArtifact]]]:
    for unit in units:
        yield unit, partial(build_artifact, unit.font, unit.bucket, subsetter, compressor)


def _parallel_builds(
    executor: Executor,
    units: Sequence[BuildUnit],
    subsetter: Subsetter,
    compressor: Compressor,
) -> Iterator[tuple[BuildUnit, Callable[[], SubsetArtifact]]]:
    futures: dict[Future, BuildUnit] = {
        executor.submit(build_artifact, unit.font, unit.bucket, subsetter, compressor): unit
        for unit in units
    }
    for future in as_completed(futures):
        yield futures[future], future.result


def _plan_all(
    fonts: Sequence[FontRepertoire],
    config: PipelineConfig,
    reference: Sequence[ReferenceBucket],
    diagnostics: list[Diagnostic],
) -> list[Webfont]:
    webfonts = []
    for font in fonts:
        try:
            buckets = plan_subsets(
                font,
                reference,
                max_subset_size=config.max_subset_size,
                residual_chunk_size=config.chunk_size,
                min_bucket_size=config.min_bucket_size,
                preload=config.preload,
            )
        except PlanningError as e:
            if config.fail_fast:
                raise PipelineError(f"{font.label}: {e}") from e
            logger.error(f"Failed to plan {font.label}: {e}")
            diagnostics.append(Diagnostic(font.label, None, e))
            continue
        webfonts.append(Webfont(font, buckets))
    return webfonts


def _record_failure(
    result: PipelineResult, unit: BuildUnit, error: Exception, failed: set[int]
) -> None:
    """
    Log a failed unit and list it in the diagnostics.

    Raises:
        PipelineError: If the run is configured to stop on the first failure
    """
    label = f"{unit.font.label}/{unit.bucket.name}"
    logger.error(f"{label}: {error}")
    if result.config.fail_fast:
        raise PipelineError(f"{label}: {error}") from error
    result.diagnostics.append(Diagnostic(unit.font.label, unit.bucket.name, error))
    failed.add(unit.number)


def _collect(
    result: PipelineResult,
    builds: Iterator[tuple[BuildUnit, Callable[[], SubsetArtifact]]],
    failed: set[int],
) -> None:
    """Store each finished build in completion order."""
    for unit, outcome in builds:
        try:
            artifact = outcome()
            entry = result.store.put(artifact.woff2_data, unit.key)
        except (SubsettingError, EncodingError, StoreError) as e:
            _record_failure(result, unit, e, failed)
            continue
        result.webfonts[unit.number].subsets.append((artifact, entry))
        result.built += 1
        logger.debug(
            f"Stored {entry.file_name} ({get_font_size_kb(artifact.woff2_data):.1f} KB)"
        )


def run_pipeline(
    fonts: Sequence[FontRepertoire],
    config: PipelineConfig,
    store: ContentStore,
    *,
    reference: Sequence[ReferenceBucket] = REFERENCE_BUCKETS,
    subsetter: Subsetter | None = None,
    compressor: Compressor | None = None,
    usage: Sequence[GlyphUsageSet] | None = None,
    fallback: FallbackResolver | None = None,
) -> PipelineResult:
    """
    Plan, build and store webfont subsets for a set of fonts.

    Units already in the store are reused. The rest are subset and encoded
    on a pool of worker processes, since both steps are CPU-bound Python;
    the store is only touched from the calling process.

    Args:
        fonts: Source faces
        config: Pipeline configuration
        store: Open content store
        reference: Prioritized reference buckets
        subsetter: Subsetting engine (fontTools by default); must be picklable
        compressor: Encoder (WOFF2 by default); must be picklable
        usage: Per-page glyph usage for static-site mode
        fallback: Fallback font set appended to fonts

    Returns:
        The run result; failed units are listed in its diagnostics

    Raises:
        PipelineError: On the first failure when config.fail_fast is set
    """
    config.validate()
    subsetter = subsetter or FontToolsSubsetter()
    compressor = compressor or Woff2Compressor()

    fonts = list(fonts)
    if fallback is not None:
        fonts.extend(fallback.repertoires())
    if usage:
        check_font_stacks(usage, fonts, fallback or FallbackResolver([]))

    result = PipelineResult([], store, config, list(usage or []))
    result.webfonts = _plan_all(fonts, config, reference, result.diagnostics)

    failed: set[int] = set()
    pending: list[BuildUnit] = []
    for number, webfont in enumerate(result.webfonts):
        for bucket in webfont.buckets:
            key = build_key(
                webfont.font.digest,
                bucket.codepoints,
                subsetter.signature,
                compressor.signature,
            )
            unit = BuildUnit(number, webfont.font, bucket, key)
            try:
                reused = _reuse(store, unit)
            except StoreError as e:
                _record_failure(result, unit, e, failed)
                continue
            if reused is None:
                pending.append(unit)
            else:
                webfont.subsets.append(reused)
                result.reused += 1

    workers = min(config.workers, len(pending))
    if config.parallel and workers > 1:
        logger.info(
            f"Building {len(pending)} subsets of {len(result.webfonts)} fonts "
            f"with {workers} worker processes"
        )
        with ProcessPoolExecutor(max_workers=workers) as executor:
            try:
                _collect(
                    result,
                    _parallel_builds(executor, pending, subsetter, compressor),
                    failed,
                )
            except PipelineError:
                executor.shutdown(cancel_futures=True)
                raise
    else:
        logger.info(f"Building {len(pending)} subsets of {len(result.webfonts)} fonts")
        _collect(result, _serial_builds(pending, subsetter, compressor), failed)

    if config.abandon_font_on_failure:
        for number in sorted(failed):
            webfont = result.webfonts[number]
            logger.warning(
                f"Abandoning {webfont.font.label}: "
                f"{len(webfont.buckets) - len(webfont.subsets)} subsets failed"
            )
            webfont.subsets.clear()

    logger.info(
        f"Built {result.built} subsets, reused {result.reused}, "
        f"failed {len(result.diagnostics)}"
    )
    return result
