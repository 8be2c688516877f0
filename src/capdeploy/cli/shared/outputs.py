"""GitHub Actions step outputs."""

import os
from pathlib import Path

from loguru import logger


def write_github_output(key: str, value: str) -> bool:
    """Append `key=value` to $GITHUB_OUTPUT.

    Returns:
        True if the output file was written, False when not running in Actions
    """
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        logger.debug(f"GITHUB_OUTPUT not set; skipping output {key}={value}")
        return False

    with Path(output_path).open("a", encoding="utf-8") as f:
        f.write(f"{key}={value}\n")
    logger.debug(f"Wrote step output {key}={value}")
    return True
