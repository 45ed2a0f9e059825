"""
Main CLI entry point for fontsplit.
"""

import sys
from pathlib import Path

import click

from fontsplit import __version__
from fontsplit.config.paths import FALLBACK_CACHE_DIR, STORE_DIR

verbose_option = click.option(
    "-v", "--verbose", is_flag=True, help="Log every subset (DEBUG level)."
)
max_subset_size_option = click.option(
    "--max-subset-size",
    type=click.IntRange(min=1),
    default=200,
    show_default=True,
    help="Residual buckets larger than this are split.",
)
residual_chunk_size_option = click.option(
    "--residual-chunk-size",
    type=click.IntRange(min=1),
    default=None,
    help="Chunk size for splitting the residual (defaults to --max-subset-size).",
)
min_bucket_size_option = click.option(
    "--min-bucket-size",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Reference intersections smaller than this fall through to the residual.",
)
reference_option = click.option(
    "--reference",
    "reference_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON reference buckets replacing the bundled dataset.",
)
preload_option = click.option(
    "--preload",
    multiple=True,
    metavar="TEXT",
    help="Characters always shipped in the first subset (repeatable).",
)


def _load_fonts(paths: tuple[Path, ...]) -> tuple[list, bool]:
    """Read every face of the given files and directories. Flag is True if all loaded."""
    from fontsplit.core.errors import FontLoadError
    from fontsplit.core.font_io import expand_font_paths, read_repertoires
    from fontsplit.utils.logging import logger

    fonts = []
    ok = True
    for path in expand_font_paths(list(paths)):
        try:
            fonts.extend(read_repertoires(path))
        except FontLoadError as e:
            logger.error(str(e))
            ok = False
    return fonts, ok


def _preload_codepoints(preload: tuple[str, ...]) -> frozenset[int]:
    return frozenset(ord(ch) for text in preload for ch in text)


def _load_reference(reference_path: Path | None):
    from fontsplit.config.unicode_ranges import REFERENCE_BUCKETS
    from fontsplit.operations.plan import load_reference_file

    if reference_path is None:
        return REFERENCE_BUCKETS
    return load_reference_file(reference_path)


@click.group()
@click.version_option(version=__version__)
def cli():
    """Split fonts into unicode-range webfont subsets."""
    pass


@cli.command()
@click.argument(
    "fonts", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option(
    "--store",
    "store_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=STORE_DIR,
    show_default=True,
    envvar="FONTSPLIT_STORE_DIR",
    help="Content-addressed store directory.",
)
@click.option(
    "--store-uri",
    default="",
    envvar="FONTSPLIT_STORE_URI",
    help="Public base URI of the store directory.",
)
@click.option(
    "--css",
    "css_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the stylesheet here (default: stdout).",
)
@click.option(
    "--append",
    "append_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Append the stylesheet to this existing file.",
)
@click.option(
    "--css-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for per-page stylesheets (with --usage).",
)
@click.option(
    "--usage",
    "usage_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON glyph usage per page; enables static-site mode.",
)
@click.option("--fallback", is_flag=True, help="Also build the fallback font set.")
@click.option(
    "--fallback-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=FALLBACK_CACHE_DIR,
    show_default=True,
    help="Fallback font cache.",
)
@max_subset_size_option
@residual_chunk_size_option
@min_bucket_size_option
@reference_option
@preload_option
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Worker processes (default: CPU count).",
)
@click.option("--serial", is_flag=True, help="Build every subset in this process.")
@click.option("--fail-fast", is_flag=True, help="Abort on the first failure.")
@click.option(
    "--abandon-font-on-failure",
    is_flag=True,
    help="Drop every subset of a font if any of its subsets failed.",
)
@click.option(
    "--font-display",
    default="swap",
    show_default=True,
    help="font-display descriptor (empty to omit).",
)
@click.option("--check", is_flag=True, help="Decode and verify every subset.")
@verbose_option
def build(
    fonts,
    store_dir,
    store_uri,
    css_path,
    append_path,
    css_dir,
    usage_path,
    fallback,
    fallback_dir,
    max_subset_size,
    residual_chunk_size,
    min_bucket_size,
    reference_path,
    preload,
    workers,
    serial,
    fail_fast,
    abandon_font_on_failure,
    font_display,
    check,
    verbose,
):
    """Build webfont subsets and their stylesheet."""
    from fontsplit.config.settings import Mode, PipelineConfig
    from fontsplit.core.errors import FontsplitError
    from fontsplit.operations.fallback import FallbackResolver
    from fontsplit.operations.store import ContentStore
    from fontsplit.operations.stylesheet import page_file_names
    from fontsplit.operations.usage import load_usage_sets
    from fontsplit.pipeline.runner import run_pipeline
    from fontsplit.pipeline.validate import validate_result
    from fontsplit.utils.logging import logger, set_verbose

    set_verbose(verbose)

    if usage_path is not None and css_dir is None:
        raise click.UsageError("--usage requires --css-dir")
    if css_dir is not None and usage_path is None:
        raise click.UsageError("--css-dir requires --usage")
    if append_path is not None and css_path is not None:
        raise click.UsageError("--append and --css cannot be used together")
    if append_path is not None and usage_path is not None:
        raise click.UsageError("--append cannot be used with --usage")

    settings = dict(
        store_dir=store_dir,
        store_uri=store_uri,
        mode=Mode.STATIC_SITE if usage_path else Mode.BASIC,
        max_subset_size=max_subset_size,
        residual_chunk_size=residual_chunk_size,
        min_bucket_size=min_bucket_size,
        fail_fast=fail_fast,
        abandon_font_on_failure=abandon_font_on_failure,
        font_display=font_display or None,
        preload=_preload_codepoints(preload),
        parallel=not serial,
    )
    if workers is not None:
        settings["workers"] = workers

    try:
        config = PipelineConfig(**settings).validate()
        reference = _load_reference(reference_path)
        usage = load_usage_sets(usage_path) if usage_path else None
        targets = page_file_names(u.page for u in usage) if usage else {}
        resolver = FallbackResolver.from_directory(fallback_dir) if fallback else None

        sources, loaded = _load_fonts(fonts)
        if not loaded and fail_fast:
            sys.exit(1)

        with ContentStore.open(config.store_dir, config.store_uri) as store:
            result = run_pipeline(
                sources,
                config,
                store,
                reference=reference,
                usage=usage,
                fallback=resolver,
            )
    except FontsplitError as e:
        logger.error(str(e))
        sys.exit(1)

    if config.static_site:
        css_dir.mkdir(parents=True, exist_ok=True)
        for page, document in result.page_stylesheets().items():
            target = css_dir / targets[page]
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(document.render(), encoding="utf-8")
            logger.info(f"Wrote {target} ({len(document)} rules)")
    else:
        document = result.stylesheet()
        if append_path is not None:
            with append_path.open("a", encoding="utf-8") as f:
                f.write(document.render())
            logger.info(f"Appended {len(document)} rules to {append_path}")
        elif css_path is None:
            click.echo(document.render(), nl=False)
        else:
            css_path.parent.mkdir(parents=True, exist_ok=True)
            css_path.write_text(document.render(), encoding="utf-8")
            logger.info(f"Wrote {css_path} ({len(document)} rules)")

    passed = validate_result(result) if check else True

    for diagnostic in result.diagnostics:
        logger.error(f"Failed: {diagnostic}")
    if not (loaded and passed and result.ok):
        sys.exit(1)


@cli.command()
@click.argument(
    "fonts", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@max_subset_size_option
@residual_chunk_size_option
@min_bucket_size_option
@reference_option
@preload_option
@verbose_option
def plan(
    fonts,
    max_subset_size,
    residual_chunk_size,
    min_bucket_size,
    reference_path,
    preload,
    verbose,
):
    """Print the subset plan of each font without building."""
    from fontsplit.core.errors import FontsplitError
    from fontsplit.core.ranges import format_unicode_range
    from fontsplit.operations.plan import plan_subsets
    from fontsplit.utils.logging import logger, set_verbose

    set_verbose(verbose)

    try:
        reference = _load_reference(reference_path)
        sources, loaded = _load_fonts(fonts)
        for font in sources:
            buckets = plan_subsets(
                font,
                reference,
                max_subset_size=max_subset_size,
                residual_chunk_size=residual_chunk_size,
                min_bucket_size=min_bucket_size,
                preload=_preload_codepoints(preload),
            )
            click.echo(f"{font.label} ({font.source})")
            for bucket in buckets:
                click.echo(
                    f"  {bucket.index:3d}  {bucket.name:<20} {len(bucket):6d}  "
                    f"{format_unicode_range(bucket.codepoints)}"
                )
    except FontsplitError as e:
        logger.error(str(e))
        sys.exit(1)

    if not loaded:
        sys.exit(1)


@cli.command()
@click.option(
    "--store",
    "store_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=STORE_DIR,
    show_default=True,
    envvar="FONTSPLIT_STORE_DIR",
    help="Content-addressed store directory.",
)
@verbose_option
def validate(store_dir, verbose):
    """Decode and verify every stored subset."""
    from fontsplit.core.errors import StoreError
    from fontsplit.operations.store import ContentStore
    from fontsplit.pipeline.validate import validate_store
    from fontsplit.utils.logging import logger, set_verbose

    set_verbose(verbose)

    try:
        store = ContentStore.open(store_dir)
    except StoreError as e:
        logger.error(str(e))
        sys.exit(1)

    if not validate_store(store):
        sys.exit(1)


@cli.command("download-fallback")
@click.option(
    "--cache",
    "cache_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=FALLBACK_CACHE_DIR,
    show_default=True,
    help="Fallback font cache.",
)
@click.option("--force", is_flag=True, help="Download again even if cached.")
def download_fallback(cache_dir, force):
    """Download the fallback font set."""
    from fontsplit.core.errors import DownloadError
    from fontsplit.operations.download import download_fallback_fonts
    from fontsplit.utils.logging import logger

    try:
        download_fallback_fonts(cache_dir, force=force)
    except DownloadError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    cli()
