"""
Mapping Engine Domain

Converts calibration-certificate XML of any vendor schema into DCC-JSON by
evaluating a mapping profile against the parsed document.
"""

from .document import SourceDocument, SourceXmlParseError
from .engine import convert_document, convert_xml_to_dcc_json, detect_profile
from .evaluator import RuleEvaluator
from .path_resolver import PathResolver, translate_path
from .xml_tree import flatten_xml_paths, parse_xml_to_tree

__all__ = [
    # Conversion
    "convert_xml_to_dcc_json",
    "convert_document",
    "detect_profile",
    # Building blocks
    "SourceDocument",
    "SourceXmlParseError",
    "PathResolver",
    "translate_path",
    "RuleEvaluator",
    # Inspection
    "parse_xml_to_tree",
    "flatten_xml_paths",
]
