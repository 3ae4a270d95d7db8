#!/usr/bin/env python3
"""Handler for listing the configured mapping profiles."""

import logging
from typing import Any, Dict

from ..core.dependencies import get_profile_registry
from ..services.profiles import summarize_profile

logger = logging.getLogger(__name__)


def handle_list_profiles() -> Dict[str, Any]:
    """List profiles from PROFILE_DIR with their detection keys and rule counts."""
    summaries = [
        summarize_profile(report.profile, source_file=path.name)
        for path, report in get_profile_registry()
    ]
    return {
        "count": len(summaries),
        "profiles": [summary.model_dump() for summary in summaries]
    }
