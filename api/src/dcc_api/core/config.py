#!/usr/bin/env python3
"""
Configuration settings for batch conversion, DCC generation and profiles.

These settings can be overridden via environment variables to adjust
limits and defaults per deployment (local dev vs production).
"""

import logging

from .env_utils import getenv_bool, getenv_clean, getenv_int, getenv_path

logger = logging.getLogger(__name__)


class BatchConfig:
    """Batch conversion configuration.

    All values can be overridden via environment variables.
    Default values are conservative for local development.
    """

    # Concurrency: Max parallel conversions across the system
    MAX_CONCURRENT_OPERATIONS = getenv_int("BATCH_MAX_CONCURRENT_OPERATIONS", 3)

    # Timeout: Max seconds per individual file conversion
    OPERATION_TIMEOUT = getenv_int("BATCH_OPERATION_TIMEOUT", 60)

    # Certificates usually arrive one per upload, occasionally a folder at a time
    MAX_CONVERSION_FILES = getenv_int("BATCH_MAX_CONVERSION_FILES", 20)

    # Upper bound for a single uploaded XML document
    MAX_UPLOAD_BYTES = getenv_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

    @classmethod
    def get_batch_limit(cls, operation_type: str) -> int:
        """Get batch size limit for specific operation type.

        Args:
            operation_type: Currently only 'conversion'

        Returns:
            Maximum files allowed for this operation
        """
        limits = {
            "conversion": cls.MAX_CONVERSION_FILES,
        }
        return limits.get(operation_type, 10)


batch_config = BatchConfig()


class GeneratorConfig:
    """Defaults used by the DCC XML generator when the data does not say otherwise."""

    DEFAULT_LANGUAGE = getenv_clean("DCC_DEFAULT_LANGUAGE", "de")
    DEFAULT_COUNTRY = getenv_clean("DCC_DEFAULT_COUNTRY", "DE")

    # Written into administrativeData/dccSoftware
    SOFTWARE_NAME = getenv_clean("DCC_SOFTWARE_NAME", "DCC Converter")
    SOFTWARE_RELEASE = getenv_clean("DCC_SOFTWARE_RELEASE", "1.0.0")


generator_config = GeneratorConfig()


class ProfileConfig:
    """Location of mapping profiles shipped with (or mounted into) the service."""

    PROFILE_DIR = getenv_path("PROFILE_DIR")

    # Reject a whole profile file when any of its rules is invalid
    STRICT = getenv_bool("PROFILE_STRICT", False)

    @classmethod
    def has_profile_dir(cls) -> bool:
        """Check whether a readable profile directory is configured."""
        if cls.PROFILE_DIR is None:
            return False
        if not cls.PROFILE_DIR.is_dir():
            logger.warning(f"PROFILE_DIR does not exist or is not a directory: {cls.PROFILE_DIR}")
            return False
        return True


profile_config = ProfileConfig()
