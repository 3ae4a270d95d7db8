#!/usr/bin/env python3
"""Mapping rule evaluation.

Turns one mapping rule plus a context element into a value:

- scalar kinds (string, number, integer, boolean, date) read one source path
- array rules iterate container elements and evaluate their fields per container
- asFoundAsLeft / conformity read DCC-specific flag attributes
- concat, template, lookup, firstOf, static combine or replace source values

None means "no value": callers never write it into DCC-JSON.
"""

import logging
import math
import re
from typing import Any
from xml.etree.ElementTree import Element

from ....models.models import (
    ArrayRule,
    AsFoundAsLeftRule,
    ConcatRule,
    ConformityRule,
    FirstOfRule,
    LookupRule,
    ScalarRule,
    StaticRule,
    TemplateRule,
)
from .assembler import set_nested, strip_array_marker
from .document import SourceDocument, get_attribute
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)

# Leading numeric literal, the same prefix a lenient float parse accepts ("12.5 mV" -> 12.5)
NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
INTEGER_PATTERN = re.compile(r"^[+-]?\d+")
DATE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})")

DEFAULT_SEPARATOR = " "
LOOKUP_WILDCARD = "*"

AS_FOUND_ATTRIBUTE = "isAsFound"
AS_LEFT_ATTRIBUTE = "isAsLeft"
CONFORMITY_ATTRIBUTE = "isConform"


def parse_number(raw: str) -> float | None:
    match = NUMBER_PATTERN.match(raw.strip())
    if not match:
        return None
    value = float(match.group(0))
    # "1e999" overflows to inf, which is no more a value than NaN
    return value if math.isfinite(value) else None


def parse_integer(raw: str) -> int | None:
    match = INTEGER_PATTERN.match(raw.strip())
    return int(match.group(0)) if match else None


def parse_boolean(raw: str) -> bool:
    return raw == "true" or raw == "1"


def datetime_to_date(raw: str) -> str:
    """'2024-08-09T14:35:13.094+02:00' -> '2024-08-09'; anything else passes through."""
    match = DATE_PATTERN.match(raw)
    return match.group(1) if match else raw


def convert_scalar(raw: str, type_name: str) -> Any:
    """Apply a scalar rule's type conversion to a non-empty raw string."""
    if type_name == "number":
        return parse_number(raw)
    if type_name == "integer":
        return parse_integer(raw)
    if type_name == "boolean":
        return parse_boolean(raw)
    if type_name == "date":
        return datetime_to_date(raw)
    return raw


class RuleEvaluator:
    """Evaluates mapping rules against elements of one source document."""

    def __init__(self, doc: SourceDocument):
        self.doc = doc
        self.resolver = PathResolver(doc)

    def evaluate(self, context: Element, rule) -> Any:
        """Evaluate any rule against a context element.

        Returns:
            The extracted value, a list of objects for array rules, or None
        """
        if isinstance(rule, ArrayRule):
            return self.evaluate_array(context, rule)
        if isinstance(rule, ScalarRule):
            return self._extract_scalar(context, rule)
        if isinstance(rule, StaticRule):
            return rule.value
        if isinstance(rule, ConcatRule):
            return self._extract_concat(context, rule)
        if isinstance(rule, TemplateRule):
            return self._extract_template(context, rule)
        if isinstance(rule, LookupRule):
            return self._extract_lookup(context, rule)
        if isinstance(rule, FirstOfRule):
            return self._extract_first_of(context, rule)
        if isinstance(rule, AsFoundAsLeftRule):
            return self._extract_as_found_as_left(context)
        if isinstance(rule, ConformityRule):
            return self._extract_conformity(context, rule)
        raise TypeError(f"Unhandled mapping rule kind: {type(rule).__name__}")

    def evaluate_array(self, context: Element, rule: ArrayRule) -> list[dict[str, Any]]:
        """Build one object per container element, in document order."""
        containers = self.resolver.find_elements(context, rule.source)
        logger.debug(f"Array '{rule.target}' matched {len(containers)} container(s) for '{rule.source}'")
        return [self.evaluate_fields(container, rule.fields) for container in containers]

    def evaluate_fields(self, container: Element, fields: list) -> dict[str, Any]:
        """Evaluate nested fields with the container as context.

        A failing field is logged and left out; its siblings still run.
        """
        item: dict[str, Any] = {}
        for field in fields:
            try:
                value = self.evaluate(container, field)
            except Exception as e:
                logger.warning(
                    f"Mapping field failed for '{field.target}': {e}",
                    extra={"rule_target": field.target},
                )
                continue

            if value is None:
                continue
            set_nested(item, strip_array_marker(field.target), value)
        return item

    def _extract_scalar(self, context: Element, rule: ScalarRule) -> Any:
        raw = self.resolver.resolve_raw_value(context, rule.source)
        if not raw:
            return None
        return convert_scalar(raw, rule.type)

    def _extract_concat(self, context: Element, rule: ConcatRule) -> str | None:
        separator = DEFAULT_SEPARATOR if rule.separator is None else rule.separator
        parts = []
        for source in rule.sources:
            raw = self.resolver.resolve_raw_value(context, source)
            if raw:
                parts.append(raw)
        return separator.join(parts) if parts else None

    def _extract_template(self, context: Element, rule: TemplateRule) -> str | None:
        result = rule.template
        has_value = False
        for i, source in enumerate(rule.sources):
            raw = self.resolver.resolve_raw_value(context, source) or ""
            if raw:
                has_value = True
            result = result.replace(f"{{{i}}}", raw)
        return result.strip() if has_value else None

    def _extract_lookup(self, context: Element, rule: LookupRule) -> Any:
        raw = self.resolver.resolve_raw_value(context, rule.source)
        if raw is None:
            return None

        # Exact key, then lowercased key, then the "*" default, then the raw value itself
        for key in (raw, raw.lower(), LOOKUP_WILDCARD):
            value = rule.map.get(key)
            if value is not None:
                return value
        return raw

    def _extract_first_of(self, context: Element, rule: FirstOfRule) -> str | None:
        for source in rule.sources:
            raw = self.resolver.resolve_raw_value(context, source)
            if raw:
                return raw
        return None

    def _extract_as_found_as_left(self, context: Element) -> str | None:
        if get_attribute(context, AS_FOUND_ATTRIBUTE) == "true":
            return "asFound"
        if get_attribute(context, AS_LEFT_ATTRIBUTE) == "true":
            return "asLeft"
        return None

    def _extract_conformity(self, context: Element, rule: ConformityRule) -> str | None:
        source = rule.source
        if source and (source.startswith("@") or "/@" in source):
            # "@isConform" or "Point/@isConform" name the flag attribute directly
            value = self.resolver.resolve_raw_value(context, source)
        else:
            if not source or source == ".":
                elem = context
            else:
                elem = self.resolver.find_first(context, source)
            if elem is None:
                return None
            value = get_attribute(elem, CONFORMITY_ATTRIBUTE)

        if value == "true":
            return "pass"
        if value == "false":
            return "fail"
        return None
