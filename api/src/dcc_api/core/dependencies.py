#!/usr/bin/env python3

import logging
from pathlib import Path

from ..models.models import ProfileLoadReport
from .config import profile_config

logger = logging.getLogger(__name__)

# Profiles from PROFILE_DIR, loaded on first use
_profile_registry = None


def get_profile_registry() -> list[tuple[Path, ProfileLoadReport]]:
    """Get or load the profiles shipped in PROFILE_DIR (empty when unset)."""
    global _profile_registry
    if _profile_registry is None:
        from ..services.profiles import load_profiles_from_dir

        if profile_config.has_profile_dir():
            _profile_registry = load_profiles_from_dir(profile_config.PROFILE_DIR, strict=profile_config.STRICT)
        else:
            logger.info("PROFILE_DIR not configured; only uploaded profiles can be used")
            _profile_registry = []

    return _profile_registry


def reset_profile_registry():
    """Forget loaded profiles so the next request reads PROFILE_DIR again"""
    global _profile_registry
    _profile_registry = None
