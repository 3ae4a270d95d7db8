"""
DCC XML Domain

Turns DCC-JSON into Digital Calibration Certificate XML:
- Completeness checks on the DCC-JSON (advisory warnings)
- Deterministic serialization with placeholders for missing mandatory data
"""

from .generator import generate_dcc_xml
from .validation import validate_dcc_data

__all__ = ["generate_dcc_xml", "validate_dcc_data"]
