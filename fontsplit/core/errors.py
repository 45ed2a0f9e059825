"""
Exception hierarchy for the webfont pipeline.

Per-bucket errors (subsetting, encoding, store) are recoverable: the runner
records them as diagnostics and keeps going. Planning and load errors are
fatal for the font they concern.
"""


class FontsplitError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(FontsplitError):
    """Invalid pipeline configuration."""


class FontLoadError(FontsplitError):
    """A source font could not be read."""


class PlanningError(FontsplitError):
    """Malformed reference data; no bucket of the font can be trusted."""


class SubsettingError(FontsplitError):
    """The subsetting engine rejected a bucket."""


class EmptySubsetError(SubsettingError):
    """The engine produced a font without any glyph for the bucket."""


class SubsetEngineError(SubsettingError):
    """Lower-level engine failure (corrupt font, unsupported table)."""


class EncodingError(FontsplitError):
    """A subset could not be encoded into the wire format."""


class CompressionError(EncodingError):
    """The WOFF2 codec failed."""


class StoreError(FontsplitError):
    """An artifact could not be written to or read from the store."""


class DownloadError(FontsplitError):
    """A fallback font could not be fetched."""


class PipelineError(FontsplitError):
    """Run aborted because fail-fast was requested."""
