"""
Pipeline configuration.

Holds every knob the pipeline consumes; the CLI fills it from its options.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from fontsplit.config.paths import STORE_DIR
from fontsplit.core.errors import ConfigError

# fontTools' WOFF2 writer always compresses with brotli at maximum quality
WOFF2_QUALITY = 11


class Mode(str, Enum):
    """Stylesheet emission mode."""

    BASIC = "basic"
    STATIC_SITE = "static-site"


@dataclass(frozen=True)
class PipelineConfig:
    """Configuration consumed by the planning and packaging pipeline."""

    store_dir: Path = STORE_DIR
    store_uri: str = ""
    mode: Mode = Mode.BASIC
    max_subset_size: int = 200
    residual_chunk_size: int | None = None  # None: use max_subset_size
    min_bucket_size: int = 1
    compression_quality: int = WOFF2_QUALITY
    workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    parallel: bool = True  # False: build in the calling process
    fail_fast: bool = False
    abandon_font_on_failure: bool = False
    font_display: str | None = "swap"
    preload: frozenset[int] = frozenset()  # always shipped in the first subset

    @property
    def chunk_size(self) -> int:
        """Chunk size used when splitting an oversized residual bucket."""
        return self.residual_chunk_size or self.max_subset_size

    @property
    def static_site(self) -> bool:
        return self.mode is Mode.STATIC_SITE

    def validate(self) -> "PipelineConfig":
        """
        Check value ranges.

        Returns:
            The config itself, so calls can be chained

        Raises:
            ConfigError: If any value is out of range
        """
        if self.max_subset_size < 1:
            raise ConfigError(
                f"max_subset_size must be positive, got {self.max_subset_size}"
            )
        if self.residual_chunk_size is not None and self.residual_chunk_size < 1:
            raise ConfigError(
                f"residual_chunk_size must be positive, got {self.residual_chunk_size}"
            )
        if self.min_bucket_size < 1:
            raise ConfigError(
                f"min_bucket_size must be at least 1, got {self.min_bucket_size}"
            )
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.compression_quality != WOFF2_QUALITY:
            raise ConfigError(
                f"compression_quality {self.compression_quality} is not supported; "
                f"the WOFF2 writer only compresses at quality {WOFF2_QUALITY}"
            )
        return self
