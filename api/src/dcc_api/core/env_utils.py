#!/usr/bin/env python3
"""
Helpers for reading DCC converter settings from the environment.

Values copied out of .env files edited on Windows often carry a trailing
carriage return; every helper here strips it before converting.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off", "")


def getenv_clean(key: str, default: str = None) -> Optional[str]:
    """Get environment variable with line endings and whitespace removed.

    Example:
        >>> # .env file has: DCC_DEFAULT_LANGUAGE=en\r\n
        >>> getenv_clean("DCC_DEFAULT_LANGUAGE", "de")
        'en'
    """
    raw_value = os.getenv(key)
    if raw_value is None:
        return default

    cleaned = raw_value.strip()
    if raw_value != cleaned:
        logger.warning(f"Environment variable {key} had trailing whitespace/line endings: {repr(raw_value)}")
    return cleaned


def getenv_bool(key: str, default: bool = False) -> bool:
    """Switches such as PROFILE_STRICT; unrecognised values keep the default."""
    raw_value = getenv_clean(key)
    if raw_value is None:
        return default

    if raw_value.lower() in TRUE_VALUES:
        return True
    if raw_value.lower() in FALSE_VALUES:
        return False

    logger.warning(f"Environment variable {key} is not a boolean: {repr(raw_value)}. Using default: {default}")
    return default


def getenv_int(key: str, default: int) -> int:
    """Numeric limits such as BATCH_MAX_CONVERSION_FILES; bad input keeps the default."""
    raw_value = getenv_clean(key)
    if raw_value is None:
        return default

    try:
        return int(raw_value)
    except ValueError:
        logger.warning(f"Environment variable {key} is not a valid integer: {repr(raw_value)}. Using default: {default}")
        return default


def getenv_list(key: str, default: list[str] = None) -> list[str]:
    """Comma-separated values such as CORS_ORIGINS, without empty entries."""
    items = [item.strip() for item in (getenv_clean(key) or "").split(",") if item.strip()]
    return items or list(default or [])


def getenv_path(key: str) -> Optional[Path]:
    """Directory settings such as PROFILE_DIR; None when unset or empty."""
    raw_value = getenv_clean(key)
    return Path(raw_value).expanduser() if raw_value else None
