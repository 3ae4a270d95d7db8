#!/usr/bin/env python3
"""Namespace-agnostic path resolution.

Profile paths use a small slash-separated syntax:

    CertificateData/HeaderData          element steps by local name
    BusinessPartner[@role='SoldTo']     step with a predicate (kept verbatim)
    SetPoint/@unit                      attribute of the selected element
    @isConform                          attribute of the context element
    . and ..                            context and parent

Each step is translated into an ElementPath query using the "{*}" wildcard,
so elements match on local name whatever namespace the source declares.
When a path is evaluated from the document root element, its first step
searches descendant-or-self; every other step selects direct children.
Lookups that fail return nothing instead of raising, so a missing element
reads as absent data.
"""

import logging
import re
from xml.etree.ElementTree import Element

from .document import SourceDocument, get_attribute, local_name, text_content

logger = logging.getLogger(__name__)

# Step name followed by an optional predicate, e.g. "Name[@role='SoldTo']"
STEP_PATTERN = re.compile(r"^([^\[]+)(.*)$")

DESCENDANT_PREFIX = ".//"
ANY_NAMESPACE = "{*}"

# Trailing positional predicate: "[2]", "[last()]", "[last()-1]"
POSITION_PATTERN = re.compile(r"^(.*?)\[\s*(\d+|last\(\)(?:\s*-\s*\d+)?)\s*\]$")


def split_position(step: str) -> tuple[str, str | None]:
    """Split a trailing positional predicate off a step.

    ElementPath applies "[1]" per parent, so ".//{*}P[1]" would return the
    first P of every parent. On a descendant step the position has to count
    over the whole search result instead, which select_position does.
    """
    match = POSITION_PATTERN.match(step)
    if not match:
        return step, None
    return match.group(1), match.group(2)


def select_position(nodes: list[Element], position: str | None) -> list[Element]:
    if position is None:
        return nodes
    if position.isdigit():
        index = int(position) - 1
    else:
        offset = position.split("-", 1)[1] if "-" in position else "0"
        index = len(nodes) - 1 - int(offset.strip())
    return [nodes[index]] if 0 <= index < len(nodes) else []


def translate_path(path: str | None, from_root: bool) -> list[str]:
    """Translate a profile path into ElementPath steps.

    Args:
        path: Simplified path from a mapping rule
        from_root: True when the path is evaluated against the document root

    Returns:
        List of ElementPath steps, e.g. ['.//{*}CertificateData', '{*}HeaderData']
    """
    if not path or path == ".":
        return ["."]

    segments = path.split("/")
    steps: list[str] = []
    descendant_next = False

    for i, segment in enumerate(segments):
        if segment == "":
            # Leading "/" is skipped; "//" inside a path searches descendants
            if i > 0:
                descendant_next = True
            continue
        if segment in (".", ".."):
            steps.append(segment)
            continue
        if segment.startswith("@"):
            steps.append(segment)
            continue

        match = STEP_PATTERN.match(segment)
        if not match:
            steps.append(segment)
            continue

        name, predicate = match.group(1), match.group(2)
        name = local_name(name.strip())
        element_step = name if name == "*" else f"{ANY_NAMESPACE}{name}"

        if (i == 0 and from_root) or descendant_next:
            steps.append(f"{DESCENDANT_PREFIX}{element_step}{predicate}")
        else:
            steps.append(f"{element_step}{predicate}")
        descendant_next = False

    return steps or ["."]


class PathResolver:
    """Resolves profile paths against one parsed source document."""

    def __init__(self, doc: SourceDocument):
        self.doc = doc

    def is_document_root(self, context: Element) -> bool:
        return context is self.doc.root

    def find_elements(self, context: Element, path: str | None) -> list[Element]:
        """Return all elements matching the path, in document order."""
        from_root = self.is_document_root(context)
        steps = translate_path(path, from_root)

        try:
            return self._evaluate(context, steps, from_root)
        except (SyntaxError, KeyError, StopIteration, ValueError) as e:
            # ElementPath raises StopIteration on unterminated predicates such as "Name["
            logger.warning(f"Path evaluation failed for '{path}' ({'/'.join(steps)}): {e}")
            return []

    def find_first(self, context: Element, path: str | None) -> Element | None:
        """Return the first matching element in document order, or None."""
        elements = self.find_elements(context, path)
        return elements[0] if elements else None

    def resolve_raw_value(self, context: Element, source: str | None) -> str | None:
        """Resolve a source path to its raw string value.

        Elements yield their trimmed text content, attributes their value.
        Returns None when nothing matches or the value is empty.
        """
        if not source:
            return None

        if source == ".":
            return text_content(context)

        if source.startswith("@"):
            return get_attribute(context, source[1:]) or None

        if "/@" in source:
            element_path, attr_name = source.split("/@", 1)
            elem = context if element_path == "." else self.find_first(context, element_path)
            if elem is None:
                return None
            return get_attribute(elem, attr_name) or None

        elem = self.find_first(context, source)
        return text_content(elem) if elem is not None else None

    def _evaluate(self, context: Element, steps: list[str], from_root: bool) -> list[Element]:
        nodes = [context]

        for step in steps:
            if step == ".":
                continue

            if step == "..":
                parents = [self.doc.parent_of(node) for node in nodes]
                nodes = [parent for parent in parents if parent is not None]
            elif step.startswith("@"):
                # Attribute nodes are read by resolve_raw_value, not selected as elements
                logger.debug(f"Attribute step '{step}' does not select elements")
                return []
            elif step.startswith(DESCENDANT_PREFIX):
                # Searching from the synthetic document node includes the root itself
                roots = [self.doc.document] if from_root and nodes == [context] else nodes
                base, position = split_position(step)
                selected = []
                for node in roots:
                    selected.extend(select_position(node.findall(base), position))
                nodes = selected
            else:
                selected = []
                for node in nodes:
                    selected.extend(node.findall(step))
                nodes = selected

            nodes = self.doc.in_document_order(nodes)
            if not nodes:
                break

        return nodes
