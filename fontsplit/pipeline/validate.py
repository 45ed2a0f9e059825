"""
Artifact validation.

Decodes stored WOFF2 files and checks them against what was planned.
"""

from collections.abc import Iterable
from io import BytesIO

from fontTools.ttLib import TTFont, TTLibError

from fontsplit.core.errors import StoreError
from fontsplit.operations.store import ContentStore
from fontsplit.pipeline.runner import PipelineResult
from fontsplit.utils.logging import logger


def decode_coverage(woff2_data: bytes) -> frozenset[int]:
    """
    Codepoints mapped by a WOFF2 font.

    Raises:
        TTLibError: If the data is not a readable font
    """
    font = TTFont(BytesIO(woff2_data))
    try:
        if font.flavor != "woff2":
            raise TTLibError(f"expected a woff2 font, got flavor {font.flavor!r}")
        return frozenset(font.getBestCmap() or {})
    finally:
        font.close()


def validate_artifact(woff2_data: bytes, codepoints: Iterable[int], name: str = "") -> bool:
    """
    Check that an artifact decodes and covers exactly the given codepoints.

    Args:
        woff2_data: Encoded subset
        codepoints: Expected coverage
        name: Label for log messages

    Returns:
        True if the coverage matches
    """
    expected = frozenset(codepoints)
    try:
        actual = decode_coverage(woff2_data)
    except (TTLibError, KeyError, ValueError, AssertionError, EOFError) as e:
        logger.error(f"{name}: failed to decode: {e}")
        return False

    missing = expected - actual
    extra = actual - expected
    if missing:
        logger.error(f"{name}: {len(missing)} codepoints missing (e.g. U+{min(missing):04X})")
    if extra:
        logger.error(f"{name}: {len(extra)} unexpected codepoints (e.g. U+{min(extra):04X})")
    if missing or extra:
        return False

    logger.debug(f"{name}: {len(actual)} codepoints (correct)")
    return True


def validate_result(result: PipelineResult) -> bool:
    """Check every stored subset of a run against its bucket."""
    all_passed = True
    checked = 0
    for webfont in result.webfonts:
        for artifact, entry in webfont.subsets:
            name = f"{webfont.font.label}/{artifact.bucket.name}"
            if not validate_artifact(artifact.woff2_data, artifact.bucket.codepoints, name):
                all_passed = False
            checked += 1

    if all_passed:
        logger.info(f"All {checked} subsets validated successfully")
    else:
        logger.error("Some subsets failed validation")
    return all_passed


def validate_store(store: ContentStore) -> bool:
    """
    Check every indexed artifact is present, matches its hash and decodes.

    Returns:
        True if the whole store is sound
    """
    logger.info(f"Validating store {store.directory}")
    all_passed = True
    checked = 0

    for entry in store.entries():
        checked += 1
        try:
            data = store.read(entry)
        except StoreError as e:
            logger.error(f"{entry.file_name}: {e}")
            all_passed = False
            continue
        try:
            coverage = decode_coverage(data)
        except (TTLibError, KeyError, ValueError, AssertionError, EOFError) as e:
            logger.error(f"{entry.file_name}: failed to decode: {e}")
            all_passed = False
            continue
        if not coverage:
            logger.error(f"{entry.file_name}: maps no codepoints")
            all_passed = False
            continue
        logger.debug(
            f"{entry.file_name}: {len(coverage)} codepoints, {entry.ref_count} references"
        )

    if checked == 0:
        logger.warning("Store is empty")
    elif all_passed:
        logger.info(f"All {checked} stored artifacts validated successfully")
    else:
        logger.error("Some stored artifacts failed validation")
    return all_passed
