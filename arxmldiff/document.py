"""XML document adapter for ARXML extraction.

Every lookup the index builder and extractor perform goes through the
functions in this module, so they never touch lxml directly.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from lxml import etree

from .exceptions import ParseError

logger = logging.getLogger(__name__)


def load_document(text: str | bytes) -> etree._Element:
    """
    Parse ARXML text and return the root element with namespaces removed.

    Args:
        text: Raw document text (str or UTF-8 bytes)

    Returns:
        The root element

    Raises:
        ParseError: If the text is not well-formed XML
    """
    # Decoded text ignores its own encoding declaration
    encoding = None
    if isinstance(text, str):
        text = text.encode('utf-8')
        encoding = 'utf-8'

    parser = etree.XMLParser(
        encoding=encoding,
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=True,
    )
    try:
        root = etree.fromstring(text, parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(
            "Invalid XML format",
            line=e.lineno,
            column=e.offset,
            reason=e.msg
        ) from e
    except ValueError as e:
        raise ParseError("Invalid XML format", reason=str(e)) from e

    if root is None:
        raise ParseError("Invalid XML format", reason="Document is empty")

    _strip_namespaces(root)
    return root


def _strip_namespaces(root: etree._Element):
    """Rewrite every tag to its local name so queries use plain AUTOSAR tags."""
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.startswith('{'):
            element.tag = etree.QName(element).localname
    etree.cleanup_namespaces(root)


@lru_cache(maxsize=256)
def _compile_chain(tags: tuple[str, ...]) -> etree.XPath:
    """Compile and cache a descendant chain such as ('A', 'B') -> .//A//B."""
    return etree.XPath('.//' + '//'.join(tags))


def text_content(node: etree._Element) -> str:
    """Concatenated text of a node and all its descendants."""
    return ''.join(node.itertext())


def all_descendants(node: etree._Element, *tags: str) -> list[etree._Element]:
    """
    Every element reached by a descendant tag chain, in document order.

    The node itself is never included.
    """
    if len(tags) == 1:
        return list(node.iterdescendants(tags[0]))
    return _compile_chain(tags)(node)


def first_descendant(node: etree._Element, *tags: str) -> Optional[etree._Element]:
    """The first element, in document order, reached by a descendant chain."""
    if len(tags) == 1:
        return next(node.iterdescendants(tags[0]), None)
    matches = _compile_chain(tags)(node)
    return matches[0] if matches else None


def first_child_text(node: etree._Element, *tags: str) -> Optional[str]:
    """
    Text of the first element reached by a descendant tag chain.

    Returns None when no element matches and "" when it is empty.
    """
    element = first_descendant(node, *tags)
    if element is None:
        return None
    return text_content(element)


def direct_children(node: etree._Element, tag: str) -> list[etree._Element]:
    """Direct children matching a tag; nested descendants are skipped."""
    return list(node.iterchildren(tag))


def direct_child_text(node: etree._Element, tag: str) -> Optional[str]:
    children = direct_children(node, tag)
    if not children:
        return None
    return text_content(children[0])


def attribute(node: etree._Element, name: str) -> Optional[str]:
    return node.get(name)


def short_name(node: etree._Element) -> str:
    """The element's SHORT-NAME (first in document order), or ""."""
    return first_child_text(node, 'SHORT-NAME') or ""


def path_segments(ref: Optional[str]) -> list[str]:
    """Non-empty segments of an AUTOSAR reference path."""
    if not ref:
        return []
    return [part for part in ref.split('/') if part]


def last_segment(ref: Optional[str]) -> str:
    """
    Final segment of a reference path.

    Example:
        >>> last_segment("/Signals/VehicleSpeed")
        'VehicleSpeed'
    """
    if not ref:
        return ""
    return ref.split('/')[-1]


def ref_name(node: etree._Element, *tags: str) -> str:
    """Last path segment of the first matching reference element, or ""."""
    return last_segment(first_child_text(node, *tags))
