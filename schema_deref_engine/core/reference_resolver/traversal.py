"""
Tree traversal engine.

Depth-first, pre-order walkers over nested dict/list structures. Both walkers
snapshot the keys of a container before iterating it and never walk the same
container twice (tracked by identity), so shared substructure and in-place
mutation during the walk are safe.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from schema_deref_engine.core.reference_resolver.models import (
    ActionKind,
    PathSegment,
    TraversalAction,
    TraversalContext,
)


Visitor = Callable[[TraversalContext, Any], Optional[TraversalAction]]
Reducer = Callable[[Any, TraversalContext, Any], Any]


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _snapshot_keys(container: Any) -> List[PathSegment]:
    if isinstance(container, list):
        return list(range(len(container)))
    return list(container.keys())


def _has_key(container: Any, key: PathSegment) -> bool:
    if isinstance(container, list):
        return isinstance(key, int) and key < len(container)
    return key in container


def _children(container: Any) -> Iterator[PathSegment]:
    """Yield the snapshotted keys that are still present when their turn comes."""
    for key in _snapshot_keys(container):
        # The visitor may have deleted this key while handling a sibling
        if not _has_key(container, key):
            continue
        yield key


def for_each(root: Any, visit: Visitor) -> Any:
    """
    Visit every value below root and apply the action each visit returns.

    After a visit, the value now stored at parent[key] is re-read: a replacement
    is what gets descended into, unless the action was replace_and_stop.

    Args:
        root: The tree to walk (mutated in place)
        visit: Callback receiving (context, value) and returning a TraversalAction
            or None (keep)

    Returns:
        The root, after all replacements
    """
    # Keeps the containers alive so their ids are not reused during the walk
    visited: Dict[int, Any] = {}

    def walk(container: Any, path: Tuple[PathSegment, ...]) -> None:
        if not is_container(container) or id(container) in visited:
            return
        visited[id(container)] = container

        for key in _children(container):
            child_path = path + (key,)
            context = TraversalContext(path=child_path, parent=container, key=key, root=root)
            action = visit(context, container[key]) or TraversalAction.keep()

            if action.kind != ActionKind.KEEP:
                container[key] = action.value
            if action.stops:
                continue

            current = container[key]
            if current is not None and is_container(current):
                walk(current, child_path)

    walk(root, ())
    return root


def reduce(root: Any, visit: Reducer, initial: Any) -> Any:
    """
    Thread an accumulator through every value below root (read-only).

    Args:
        root: The tree to walk
        visit: Callback receiving (accumulator, context, value) and returning the
            new accumulator
        initial: Initial accumulator

    Returns:
        The final accumulator
    """
    visited: Dict[int, Any] = {}
    accumulator = initial

    def walk(container: Any, path: Tuple[PathSegment, ...]) -> None:
        nonlocal accumulator
        if not is_container(container) or id(container) in visited:
            return
        visited[id(container)] = container

        for key in _children(container):
            child_path = path + (key,)
            context = TraversalContext(path=child_path, parent=container, key=key, root=root)
            value = container[key]
            accumulator = visit(accumulator, context, value)
            if value is not None and is_container(value):
                walk(value, child_path)

    walk(root, ())
    return accumulator
