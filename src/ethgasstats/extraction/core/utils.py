"""
Utility functions for Ethereum data extraction.

This module provides:
- Logging setup shared by the CLI and library users
- ABI loading from inline JSON, JSON files or already parsed lists
"""

import json
import logging
from pathlib import Path
from typing import Any

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ERROR_LOG_FILENAME = "ethgasstats-error.log"
COMBINED_LOG_FILENAME = "ethgasstats-combined.log"


def load_abi_json(source: str | Path | list[Any]) -> list[Any]:
    """
    Load an ABI source from inline JSON, a JSON file or a parsed list.

    A string naming an existing file is read from disk; any other string is
    parsed as JSON. A file that exists but cannot be read is logged and
    treated as an empty ABI list.

    Args:
        source: Inline JSON text, path to a JSON file, or parsed list

    Returns:
        Parsed ABI source as a list

    Raises:
        ValueError: If the JSON is invalid or does not hold a list

    Example:
        >>> load_abi_json('[{"type": "function", "name": "transfer"}]')
        [{'type': 'function', 'name': 'transfer'}]
    """
    if isinstance(source, list):
        return source

    text = str(source)
    path = Path(text)

    try:
        is_file = path.is_file()
    except OSError:
        # Long JSON strings are not valid file names on every platform
        is_file = False

    if is_file:
        try:
            text = path.read_text(encoding="utf-8")
            logger.debug(f"Loaded ABI source from {path}")
        except OSError as e:
            logger.error(f"Error occurred on reading abi file: {e}")
            text = "[]"

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid ABI JSON: {e}") from e

    if not isinstance(parsed, list):
        raise ValueError(f"ABI source must be a JSON list, got {type(parsed).__name__}")

    return parsed


def setup_logging(
    level: str = "INFO",
    log_format: str | None = None,
    log_dir: str | Path | None = None,
) -> None:
    """
    Configure logging for the extraction pipeline.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string. Uses default if None.
        log_dir: If given, also write ethgasstats-error.log (errors only)
            and ethgasstats-combined.log (everything) to this directory
    """
    if log_format is None:
        log_format = DEFAULT_LOG_FORMAT

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        error_handler = logging.FileHandler(log_dir / ERROR_LOG_FILENAME, encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)
        handlers.append(
            logging.FileHandler(log_dir / COMBINED_LOG_FILENAME, encoding="utf-8")
        )

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )

    # Reduce noise from web3, urllib3 and aiohttp loggers
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
