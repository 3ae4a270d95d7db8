#!/usr/bin/env python3
"""Source XML to DCC-JSON conversion driven by a mapping profile.

Each top-level rule is applied on its own: a rule that raises is logged and
contributes nothing, while the remaining rules still fill the result. Only a
source document that cannot be parsed aborts a conversion.
"""

import logging
from typing import Any, Iterable

from ....models.models import ArrayRule, MappingProfile
from .assembler import set_nested, strip_array_marker
from .document import SourceDocument, SourceXmlParseError, local_name, namespace_uri
from .evaluator import RuleEvaluator

logger = logging.getLogger(__name__)


def apply_rule(evaluator: RuleEvaluator, rule, result: dict[str, Any]) -> bool:
    """Evaluate one top-level rule from the document root and store its value.

    Returns:
        True if a value was written
    """
    context = evaluator.doc.root
    if isinstance(rule, ArrayRule):
        # Arrays are always written, even when no container matched
        set_nested(result, strip_array_marker(rule.target), evaluator.evaluate_array(context, rule))
        return True

    value = evaluator.evaluate(context, rule)
    if value is None:
        return False
    set_nested(result, rule.target, value)
    return True


def convert_document(doc: SourceDocument, profile: MappingProfile) -> dict[str, Any]:
    """Apply every rule of a profile to an already parsed document."""
    evaluator = RuleEvaluator(doc)
    result: dict[str, Any] = {}
    written = 0
    failed = 0

    for rule in profile.mappings:
        try:
            if apply_rule(evaluator, rule, result):
                written += 1
        except Exception as e:
            failed += 1
            logger.warning(
                f"Mapping rule failed for '{rule.target}': {e}",
                extra={"profile_name": profile.name, "rule_target": rule.target},
            )

    logger.info(
        f"Applied profile '{profile.name}': {len(profile.mappings)} rules, "
        f"{written} produced values, {failed} failed",
        extra={"profile_name": profile.name},
    )
    return result


def convert_xml_to_dcc_json(xml_content: str | bytes, profile: MappingProfile) -> dict[str, Any]:
    """Convert source XML text to DCC-JSON using a mapping profile.

    Args:
        xml_content: Source certificate XML
        profile: Mapping profile to apply

    Returns:
        DCC-JSON dictionary; fields without a value are omitted

    Raises:
        SourceXmlParseError: If the XML cannot be parsed
    """
    doc = SourceDocument.from_string(xml_content)
    return convert_document(doc, profile)


def detect_profile(xml_content: str | bytes, profiles: Iterable[MappingProfile]) -> MappingProfile | None:
    """Pick the profile written for this document.

    A profile whose schemaNamespace equals the root element's namespace wins;
    otherwise the first profile whose rootElement equals the root's local name.
    Returns None for unparseable XML or when nothing matches.
    """
    try:
        doc = SourceDocument.from_string(xml_content)
    except SourceXmlParseError as e:
        logger.info(f"Profile detection skipped, XML did not parse: {e}")
        return None

    root_ns = namespace_uri(doc.root.tag)
    root_name = local_name(doc.root.tag)
    candidates = list(profiles)

    for profile in candidates:
        if profile.schemaNamespace and profile.schemaNamespace == root_ns:
            logger.info(f"Detected profile '{profile.name}' by namespace {root_ns}")
            return profile

    for profile in candidates:
        if profile.rootElement and profile.rootElement == root_name:
            logger.info(f"Detected profile '{profile.name}' by root element {root_name}")
            return profile

    logger.info(f"No profile matches root element {{{root_ns}}}{root_name}")
    return None
