"""
Flow metadata parsing: ``*.flow-meta.xml`` -> nested mapping.

The mapping mirrors the XML tree. A tag repeated under one parent becomes a
list; a tag that appears once stays a bare value, so a collection holding a
single element is a mapping rather than a list of one. The graph builder
normalises that, this module does not.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, Union

from .errors import FlowParseError

logger = logging.getLogger(__name__)

FLOW_SUFFIX = ("flow-meta", "xml")


def is_flow_path(path: Union[str, Path]) -> bool:
    """Return True if ``path`` follows the ``<name>.flow-meta.xml`` convention."""
    parts = Path(str(path)).name.split(".")
    if len(parts) < 3:
        return False
    return (parts[-2], parts[-1]) == FLOW_SUFFIX


def _local_name(tag: str) -> str:
    # Remove namespace prefix
    return tag.split("}")[-1]


def _element_to_value(elem: ET.Element) -> Any:
    children = list(elem)
    if not children:
        return (elem.text or "").strip()

    value: Dict[str, Any] = {}
    for child in children:
        key = _local_name(child.tag)
        child_value = _element_to_value(child)
        if key not in value:
            value[key] = child_value
        elif isinstance(value[key], list):
            value[key].append(child_value)
        else:
            value[key] = [value[key], child_value]
    return value


def parse_flow_xml(source: Union[str, bytes], filename: str = "<string>") -> Dict[str, Any]:
    """
    Parse flow metadata XML into a nested mapping.

    Args:
        source: XML document text or bytes
        filename: name used in error messages

    Returns:
        ``{<root tag>: mapping}``, normally ``{"Flow": {...}}``

    Raises:
        FlowParseError: if the document is not well-formed XML
    """
    try:
        root = ET.fromstring(source)
    except ET.ParseError as e:
        raise FlowParseError(f"{filename}: {e}") from e

    body = _element_to_value(root)
    if not isinstance(body, dict):
        body = {}
    logger.debug("Parsed %s: root <%s> with %d top-level keys", filename, _local_name(root.tag), len(body))
    return {_local_name(root.tag): body}


def load_flow_document(path: Union[str, Path]) -> Dict[str, Any]:
    """Read and parse a flow metadata file."""
    p = Path(path)
    return parse_flow_xml(p.read_bytes(), filename=str(p))
