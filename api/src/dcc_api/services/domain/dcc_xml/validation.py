#!/usr/bin/env python3
"""Completeness checks for DCC-JSON before it is turned into DCC XML.

Warnings are advisory. Generation always proceeds and fills gaps with
placeholders; the warnings tell a reviewer what to complete by hand.
"""

import logging
from typing import Any

from ..mapping.assembler import get_nested

logger = logging.getLogger(__name__)

MISSING_CERTIFICATE_ID = "missing certificate ID (coreData.uniqueIdentifier)"
MISSING_BEGIN_DATE = "missing begin-date (coreData.beginPerformanceDate)"
MISSING_LABORATORY_NAME = "missing laboratory name (calibrationLaboratory.name)"
MISSING_CUSTOMER_NAME = "missing customer name (customer.name)"
NO_ITEMS = "no items (items)"
NO_MEASUREMENT_RESULTS = "no measurement results (measurementResults)"
NO_MEASURING_EQUIPMENT = "no measuring equipment (measuringEquipments)"
NO_STATEMENTS = "no statements (statements)"

# (dotted path, warning) for values that must be present and non-empty
REQUIRED_VALUES = [
    ("coreData.uniqueIdentifier", MISSING_CERTIFICATE_ID),
    ("coreData.beginPerformanceDate", MISSING_BEGIN_DATE),
    ("calibrationLaboratory.name", MISSING_LABORATORY_NAME),
    ("customer.name", MISSING_CUSTOMER_NAME),
]

# (key, warning) for lists that should hold at least one entry
REQUIRED_LISTS = [
    ("items", NO_ITEMS),
    ("measurementResults", NO_MEASUREMENT_RESULTS),
    ("measuringEquipments", NO_MEASURING_EQUIPMENT),
    ("statements", NO_STATEMENTS),
]


def validate_dcc_data(data: Any) -> list[str]:
    """Check DCC-JSON for missing mandatory data.

    Args:
        data: DCC-JSON dictionary (anything else counts as empty)

    Returns:
        List of human-readable warnings, empty when nothing is missing
    """
    if not isinstance(data, dict):
        data = {}

    warnings = []
    for path, message in REQUIRED_VALUES:
        if not get_nested(data, path):
            warnings.append(message)

    for key, message in REQUIRED_LISTS:
        value = data.get(key)
        if not isinstance(value, list) or not value:
            warnings.append(message)

    if warnings:
        logger.debug(f"DCC data validation produced {len(warnings)} warning(s)")
    return warnings
