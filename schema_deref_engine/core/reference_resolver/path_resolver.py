"""
Pointer-path resolution against a document.
"""

from typing import Any, List
from urllib.parse import unquote


class _NotFound:
    """Sentinel type for pointers that do not resolve (null is a valid value)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()


def split_pointer(pointer: str) -> List[str]:
    """
    Split a pointer path into unescaped segments.

    Anything up to and including a '#' marker is dropped, as is a single leading
    '/'. An empty remainder means "the whole document" and yields no segments.
    """
    path = pointer.split("#", 1)[1] if "#" in pointer else pointer
    if path.startswith("/"):
        path = path[1:]
    if not path:
        return []
    return [unquote(segment).replace("~1", "/").replace("~0", "~") for segment in path.split("/")]


def resolve_path(root: Any, pointer: str) -> Any:
    """
    Walk root along a pointer path.

    Args:
        root: Document to look into
        pointer: Pointer path such as "#/definitions/a", "/items/0" or "#"

    Returns:
        The node found, or NOT_FOUND
    """
    current = root
    for segment in split_pointer(pointer):
        if isinstance(current, dict):
            if segment not in current:
                return NOT_FOUND
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit() or int(segment) >= len(current):
                return NOT_FOUND
            current = current[int(segment)]
        else:
            return NOT_FOUND
    return current
