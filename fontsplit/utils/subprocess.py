"""
Subprocess execution utilities with consistent error handling.
"""

import subprocess
import sys
from pathlib import Path

from fontsplit.utils.logging import logger


def run_command(
    cmd: list[str],
    description: str | None = None,
    exit_on_error: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run a subprocess command with consistent logging and error handling.

    Args:
        cmd: Command and arguments to run
        description: Optional description for logging
        exit_on_error: Whether to exit on failure (default True)

    Returns:
        CompletedProcess result

    Raises:
        SystemExit: If exit_on_error is True and command fails
        subprocess.CalledProcessError: If exit_on_error is False and command fails
    """
    if description:
        logger.debug(description)

    try:
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
        if result.stdout:
            logger.debug(result.stdout)
        return result
    except subprocess.CalledProcessError as e:
        logger.error(f"Command failed: {' '.join(cmd)}")
        if e.stderr:
            logger.error(e.stderr)
        if exit_on_error:
            sys.exit(1)
        raise


def run_pyftsubset(
    input_font: Path,
    output_file: Path,
    unicodes: str,
    *,
    font_number: int = 0,
    keep_layout: bool = True,
    drop_hinting: bool = True,
    exit_on_error: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run pyftsubset to subset a font.

    Args:
        input_font: Input font path
        output_file: Output file path
        unicodes: Comma-separated Unicode ranges (hex, no U+ prefix)
        font_number: Face index inside a font collection
        keep_layout: Whether to preserve layout features
        drop_hinting: Whether to strip hinting instructions
        exit_on_error: Whether to exit on failure

    Returns:
        CompletedProcess result
    """
    cmd = [
        "pyftsubset",
        str(input_font),
        f"--unicodes={unicodes}",
        f"--font-number={font_number}",
        "--no-recalc-timestamp",
        f"--output-file={output_file}",
    ]

    if drop_hinting:
        cmd.append("--no-hinting")

    if keep_layout:
        cmd.append("--layout-features=*")

    return run_command(
        cmd,
        f"Subsetting {input_font.name}",
        exit_on_error,
    )
