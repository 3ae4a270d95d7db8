#!/usr/bin/env python3
"""Source XML structure inspection.

Summarizes a source document as a tree of local names for people writing
mapping profiles: repeated siblings are merged into one node with a count,
and every element and attribute gets the path a rule would use to reach it.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional
from xml.etree.ElementTree import Element

from .document import SourceXmlParseError, local_name, parse_xml, text_content

logger = logging.getLogger(__name__)

MAX_VALUE_LENGTH = 60
TRUNCATED_LENGTH = 57


@dataclass
class AttributeNode:
    """Attribute of an element in the inspection tree."""
    name: str           # Local attribute name
    path: str           # e.g. "Certificate/Point/@unit"
    value: str


@dataclass
class XmlTreeNode:
    """Element in the inspection tree; same-named siblings share one node."""
    name: str                               # Local element name
    path: str                               # Slash path from the root element
    attributes: list[AttributeNode] = field(default_factory=list)
    children: list['XmlTreeNode'] = field(default_factory=list)
    hasText: bool = False                   # Leaf element with non-empty text
    value: Optional[str] = None             # Sample text, truncated
    count: int = 1                          # Sibling occurrences with this name

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _truncate(text: str) -> str:
    if len(text) > MAX_VALUE_LENGTH:
        return text[:TRUNCATED_LENGTH] + "..."
    return text


def build_tree_node(elem: Element, parent_path: str = "") -> XmlTreeNode:
    name = local_name(elem.tag)
    path = f"{parent_path}/{name}" if parent_path else name
    node = XmlTreeNode(name=name, path=path)

    for attr_key, attr_value in elem.attrib.items():
        attr_name = local_name(attr_key)
        if attr_name.startswith("xmlns"):
            continue
        node.attributes.append(AttributeNode(name=attr_name, path=f"{path}/@{attr_name}", value=attr_value))

    child_elements = list(elem)
    if not child_elements:
        text = text_content(elem)
        if text:
            node.hasText = True
            node.value = _truncate(text)

    by_name: dict[str, XmlTreeNode] = {}
    for child in child_elements:
        child_node = build_tree_node(child, path)
        existing = by_name.get(child_node.name)
        if existing is None:
            by_name[child_node.name] = child_node
            continue

        # Merge what this occurrence adds over the first one
        existing.count += 1
        known_attrs = {a.name for a in existing.attributes}
        existing.attributes.extend(a for a in child_node.attributes if a.name not in known_attrs)
        known_children = {c.name for c in existing.children}
        existing.children.extend(c for c in child_node.children if c.name not in known_children)

    node.children = list(by_name.values())
    return node


def parse_xml_to_tree(xml_content: str | bytes) -> XmlTreeNode | None:
    """Parse XML into an inspection tree, or None if it does not parse."""
    try:
        root = parse_xml(xml_content)
    except SourceXmlParseError as e:
        logger.info(f"Cannot build XML tree: {e}")
        return None
    return build_tree_node(root)


def _collect_paths(node: XmlTreeNode, paths: set[str]) -> None:
    paths.add(node.path)
    for attr in node.attributes:
        paths.add(attr.path)
    for child in node.children:
        _collect_paths(child, paths)


def flatten_xml_paths(tree: XmlTreeNode) -> list[str]:
    """All element and attribute paths in the tree, sorted."""
    paths: set[str] = set()
    _collect_paths(tree, paths)
    return sorted(paths)
