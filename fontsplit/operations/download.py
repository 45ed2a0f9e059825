"""
Fallback font download.

Fetches the font set behind the reserved fallback family into a local cache.
"""

from dataclasses import dataclass
from pathlib import Path

import requests

from fontsplit.config.paths import FALLBACK_CACHE_DIR
from fontsplit.core.errors import DownloadError
from fontsplit.utils.logging import logger

NOTO_BASE = "https://raw.githubusercontent.com/notofonts/notofonts.github.io/main/fonts"


@dataclass(frozen=True)
class DownloadItem:
    """Configuration for a file to download."""

    url: str
    output_name: str
    description: str


# Order matters: earlier fonts claim shared codepoints first
FALLBACK_FONTS = [
    DownloadItem(
        f"{NOTO_BASE}/NotoSans/unhinted/ttf/NotoSans-Regular.ttf",
        "NotoSans-Regular.ttf",
        "Noto Sans",
    ),
    DownloadItem(
        f"{NOTO_BASE}/NotoSansMath/unhinted/ttf/NotoSansMath-Regular.ttf",
        "NotoSansMath-Regular.ttf",
        "Noto Sans Math",
    ),
    DownloadItem(
        f"{NOTO_BASE}/NotoSansSymbols/unhinted/ttf/NotoSansSymbols-Regular.ttf",
        "NotoSansSymbols-Regular.ttf",
        "Noto Sans Symbols",
    ),
    DownloadItem(
        f"{NOTO_BASE}/NotoSansSymbols2/unhinted/ttf/NotoSansSymbols2-Regular.ttf",
        "NotoSansSymbols2-Regular.ttf",
        "Noto Sans Symbols 2",
    ),
    # Noto Sans Mono CJK JP (Variable Font)
    DownloadItem(
        "https://raw.githubusercontent.com/notofonts/noto-cjk/f8d157532fbfaeda587e826d4cd5b21a49186f7c/Sans/Variable/TTF/Mono/NotoSansMonoCJKjp-VF.ttf",
        "NotoSansMonoCJKjp-VF.ttf",
        "Noto Sans Mono CJK JP (Variable)",
    ),
]


def download_file(item: DownloadItem, output_dir: Path) -> bool:
    """
    Download a file.

    Args:
        item: Download item configuration
        output_dir: Output directory

    Returns:
        True if successful, False if failed
    """
    target = output_dir / item.output_name
    logger.info(f"Downloading {item.description}")
    logger.info(f"  {target.name}")

    try:
        response = requests.get(item.url, timeout=120)
        response.raise_for_status()

        target.write_bytes(response.content)

        size = len(response.content) / 1024 / 1024
        logger.info(f"Downloaded ({size:.2f} MB)")
        return True

    except requests.RequestException as e:
        logger.error(f"Failed to download: {e}")
        return False
    except OSError as e:
        logger.error(f"Failed to write {target}: {e}")
        return False


def fallback_font_paths(output_dir: Path = FALLBACK_CACHE_DIR) -> list[Path]:
    """Cached locations of the fallback fonts, in claiming order."""
    return [output_dir / item.output_name for item in FALLBACK_FONTS]


def download_fallback_fonts(
    output_dir: Path = FALLBACK_CACHE_DIR, *, force: bool = False
) -> list[Path]:
    """
    Download every fallback font not already cached.

    Args:
        output_dir: Cache directory
        force: Download again even if a file is cached

    Returns:
        Paths of the cached fallback fonts

    Raises:
        DownloadError: If any download failed
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading fallback fonts to {output_dir}")

    failures: list[str] = []
    for item in FALLBACK_FONTS:
        if not force and (output_dir / item.output_name).exists():
            logger.info(f"{item.description} already cached (skipped)")
            continue
        if not download_file(item, output_dir):
            failures.append(item.description)

    logger.info("Download Summary")
    logger.info(f"  Success: {len(FALLBACK_FONTS) - len(failures)}")
    if failures:
        logger.error(f"  Failed:  {len(failures)}")
        raise DownloadError(f"Failed to download: {', '.join(failures)}")

    logger.info(f"All fallback fonts ready in {output_dir}/")
    return fallback_font_paths(output_dir)
