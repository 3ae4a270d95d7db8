#!/usr/bin/env python3
"""Parsed source XML document used by the mapping engine.

The parsed tree is never modified. The root element is attached to a
synthetic document node so that the root itself can be matched by a
descendant-or-self search and reached through "..".
"""

import logging
from xml.etree.ElementTree import Element, ParseError

# Use defusedxml for secure XML parsing (prevents XXE attacks)
import defusedxml
import defusedxml.ElementTree as ET

logger = logging.getLogger(__name__)

DOCUMENT_NODE_TAG = "#document"


class SourceXmlParseError(Exception):
    """Raised when the source XML cannot be parsed."""
    pass


def local_name(tag) -> str:
    """Strip the namespace ({uri}name) or prefix (ns:name) from a tag or attribute name."""
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        return tag[tag.index("}") + 1:]
    if ":" in tag:
        return tag.split(":", 1)[1]
    return tag


def namespace_uri(tag) -> str:
    """Namespace URI of a Clark-notation tag, or "" when it has none."""
    if isinstance(tag, str) and tag.startswith("{"):
        return tag[1:tag.index("}")]
    return ""


def get_attribute(elem: Element, name: str) -> str | None:
    """Get an attribute by local name, whatever namespace it was declared in."""
    value = elem.attrib.get(name)
    if value is not None:
        return value

    wanted = local_name(name)
    for key, value in elem.attrib.items():
        if local_name(key) == wanted:
            return value
    return None


def text_content(elem: Element) -> str | None:
    """All descendant text of an element, trimmed; None when empty."""
    text = "".join(elem.itertext()).strip()
    return text or None


def parse_xml(xml_content: str | bytes) -> Element:
    """Parse XML text into an element tree root.

    Raises:
        SourceXmlParseError: If the XML is malformed or uses forbidden constructs
    """
    try:
        return ET.fromstring(xml_content)
    except ParseError as e:
        raise SourceXmlParseError(f"XML parse error: {str(e)[:200]}") from e
    except defusedxml.DefusedXmlException as e:
        raise SourceXmlParseError(f"XML rejected by parser: {e}") from e


class SourceDocument:
    """A parsed source document with lazily built parent and order indices."""

    def __init__(self, root: Element):
        self.root = root
        self.document = Element(DOCUMENT_NODE_TAG)
        self.document.append(root)
        self._parents: dict[Element, Element] | None = None
        self._order: dict[Element, int] | None = None

    @classmethod
    def from_string(cls, xml_content: str | bytes) -> "SourceDocument":
        return cls(parse_xml(xml_content))

    def parent_of(self, elem: Element) -> Element | None:
        if self._parents is None:
            self._parents = {child: parent for parent in self.document.iter() for child in parent}
        return self._parents.get(elem)

    def in_document_order(self, elements) -> list[Element]:
        """Deduplicate elements and sort them by position in the document."""
        if self._order is None:
            self._order = {elem: i for i, elem in enumerate(self.document.iter())}
        unique = {id(elem): elem for elem in elements}
        return sorted(unique.values(), key=lambda elem: self._order.get(elem, -1))
