"""
Reference classification component.

This component recognizes reference nodes and decides which loader is responsible
for them: "local" for pointers into the current document, "file" for paths to
other documents, or the URI scheme of the reference when a loader is registered
for it.
"""

import re
from typing import Any, Optional

from schema_deref_engine.core.reference_resolver.config import REF_KEY
from schema_deref_engine.core.reference_resolver.models import ReferenceDescriptor, ReferenceType

# Two or more characters so that Windows drive letters ("C:\...") stay file paths
_SCHEME_PATTERN = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]+):")


def get_ref_value(node: Any) -> Optional[str]:
    """Return the string "$ref" value of a node, or None if it is not a reference node."""
    if isinstance(node, dict):
        value = node.get(REF_KEY)
        if isinstance(value, str):
            return value
    return None


def is_reference(node: Any) -> bool:
    return get_ref_value(node) is not None


def get_ref_type(ref_value: str) -> str:
    """
    Determine the reference type of a "$ref" value.

    Args:
        ref_value: The raw "$ref" string

    Returns:
        "local", "file", or the lower-cased URI scheme of the reference
    """
    if ref_value.startswith("#"):
        return ReferenceType.LOCAL.value

    match = _SCHEME_PATTERN.match(ref_value)
    if match:
        scheme = match.group(1).lower()
        if scheme != ReferenceType.FILE.value:
            return scheme

    return ReferenceType.FILE.value


def classify(node: Any) -> Optional[ReferenceDescriptor]:
    """
    Classify a node as a reference.

    Args:
        node: Any value of the document tree

    Returns:
        A ReferenceDescriptor, or None if node is not a mapping with a string "$ref"
    """
    ref_value = get_ref_value(node)
    if ref_value is None:
        return None
    return ReferenceDescriptor(type=get_ref_type(ref_value), destination=ref_value)


def get_ref_file_path(ref_value: str) -> str:
    """Return the path part of a file reference (no fragment, no "file://" prefix)."""
    location = ref_value.split("#", 1)[0]
    if location.lower().startswith("file://"):
        location = location[len("file://"):]
    return location
