#!/usr/bin/env python3
"""Handler for DCC XML generation from DCC-JSON."""

import logging
from typing import Any

from fastapi import HTTPException

from ..models.models import GenerateResponse
from ..services.domain.dcc_xml import generate_dcc_xml

logger = logging.getLogger(__name__)


def handle_generate_dcc_xml(dcc_json: Any) -> GenerateResponse:
    """Generate DCC XML; incomplete data produces warnings, never an error."""
    if not isinstance(dcc_json, dict):
        raise HTTPException(status_code=400, detail="Request body must be a DCC-JSON object")

    xml_text, warnings = generate_dcc_xml(dcc_json)
    if warnings:
        logger.info(f"DCC XML generated with {len(warnings)} warnings")
    return GenerateResponse(xml=xml_text, warnings=warnings)
