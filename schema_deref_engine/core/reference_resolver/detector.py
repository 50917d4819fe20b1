"""
Circular reference detection component.

Two independent checks guard the resolution engine against unbounded recursion:

1. A static check over the local references of a document, run before any
   substitution. It flags references that point at their own ancestors or
   descendants ("self references") and builds a dependency graph of the
   remaining local references, failing on the first edge that closes a cycle.
2. A dynamic history of the destinations currently being resolved on the
   active resolution path. Revisiting a destination that is already on the
   stack is a live cycle.

The self-reference test compares paths as plain string prefixes, so a
reference from "properties/a" to "properties/ab" is flagged even though
neither path contains the other. This is kept for compatibility and is a known
source of false positives.
"""

import logging
from typing import Any, FrozenSet, List, Optional, Set

import networkx as nx

from schema_deref_engine.core.reference_resolver import traversal
from schema_deref_engine.core.reference_resolver.classifier import classify
from schema_deref_engine.core.reference_resolver.errors import CircularReferenceError, SelfReferenceError
from schema_deref_engine.core.reference_resolver.models import (
    LocalReferenceEdge,
    ReferenceDescriptor,
    ReferenceType,
    ResolutionState,
    TraversalContext,
)

logger = logging.getLogger(__name__)


def _pointer_to_path(destination: str) -> str:
    """Turn "#/definitions/a" into "definitions/a" (the form reference paths are joined in)."""
    path = destination[1:] if destination.startswith("#") else destination
    return path[1:] if path.startswith("/") else path


class CircularReferenceDetector:
    """
    Static and dynamic circular reference checks.

    The detector is stateless; dynamic history lives on the ResolutionState of
    the call being checked.
    """

    # --- Static check ---

    def collect_local_edges(self, document: Any) -> List[LocalReferenceEdge]:
        """
        Collect every local reference of a document as a from/to edge.

        Args:
            document: The original, un-substituted document

        Returns:
            Edges in traversal order
        """
        def collect(edges: List[LocalReferenceEdge], context: TraversalContext, node: Any) -> List[LocalReferenceEdge]:
            descriptor = classify(node)
            if descriptor is not None and descriptor.is_local and descriptor.destination:
                edges.append(
                    LocalReferenceEdge(
                        from_path=context.path_string,
                        to_path=_pointer_to_path(descriptor.destination),
                        destination=descriptor.destination,
                    )
                )
            return edges

        return traversal.reduce(document, collect, [])

    def is_self_reference(self, edge: LocalReferenceEdge) -> bool:
        """Check whether a reference points at the root, itself, an ancestor or a descendant."""
        if edge.destination == "#" or not edge.to_path:
            return True
        if edge.from_path == edge.to_path:
            return True
        if edge.from_path.startswith(edge.to_path):
            return True
        if edge.from_path and edge.to_path.startswith(edge.from_path):
            return True
        return False

    def find_cycle_edge(self, edges: List[LocalReferenceEdge]) -> Optional[LocalReferenceEdge]:
        """
        Add edges to a dependency graph in order and return the first one that closes a cycle.

        Args:
            edges: Local reference edges ("from depends on to")

        Returns:
            The offending edge, or None if the references form a DAG
        """
        graph = nx.DiGraph()
        for edge in edges:
            graph.add_node(edge.from_path)
            graph.add_node(edge.to_path)

        for edge in edges:
            if nx.has_path(graph, edge.to_path, edge.from_path):
                return edge
            graph.add_edge(edge.from_path, edge.to_path)
        return None

    def find_cyclic_paths(self, edges: List[LocalReferenceEdge]) -> Set[str]:
        """Return the from-paths of every edge that lies on a dependency cycle."""
        graph = nx.DiGraph()
        graph.add_edges_from((edge.from_path, edge.to_path) for edge in edges)

        cyclic: Set[str] = set()
        for component in nx.strongly_connected_components(graph):
            if len(component) < 2:
                continue
            cyclic.update(
                edge.from_path for edge in edges
                if edge.from_path in component and edge.to_path in component
            )
        return cyclic

    def check_local_circular(self, document: Any, tolerant: bool = False) -> FrozenSet[str]:
        """
        Run the static local-cycle check on a document.

        Args:
            document: The original, un-substituted document
            tolerant: When True, report offending references instead of raising

        Returns:
            Paths of the references to keep unresolved (always empty when not tolerant)

        Raises:
            SelfReferenceError: If a reference points at itself, an ancestor or a descendant
            CircularReferenceError: If the local references form a dependency cycle
        """
        edges = self.collect_local_edges(document)
        if not edges:
            return frozenset()

        self_refs = [edge for edge in edges if self.is_self_reference(edge)]
        if self_refs and not tolerant:
            raise SelfReferenceError()

        if not self_refs:
            cycle_edge = self.find_cycle_edge(edges)
            if cycle_edge is not None and not tolerant:
                raise CircularReferenceError(
                    f"Circular self reference from {cycle_edge.from_path} to {cycle_edge.to_path}",
                    references=[cycle_edge.destination],
                )

        if not tolerant:
            return frozenset()

        keep = {edge.from_path for edge in self_refs}
        keep.update(self.find_cyclic_paths([edge for edge in edges if not self.is_self_reference(edge)]))
        if keep:
            logger.warning(f"Keeping {len(keep)} circular local reference(s) unresolved: {sorted(keep)}")
        return frozenset(keep)

    # --- Dynamic check ---

    def history_key(self, descriptor: ReferenceDescriptor, document_id: str, canonical_id: Optional[str] = None) -> Optional[str]:
        """
        Compute the history key of a reference.

        Local references are scoped to the document they appear in; external
        references are keyed by their canonical document identifier.

        Returns:
            The key, or None for a reference to the whole current document
            (which is always circular)
        """
        if descriptor.is_local:
            if descriptor.destination == "#":
                return None
            return f"{document_id}:{descriptor.destination}"
        if descriptor.type == ReferenceType.FILE.value:
            return f"file:{canonical_id or descriptor.location}"
        # Locations of other types already carry their scheme
        return canonical_id or descriptor.location

    def enter(self, state: ResolutionState, key: Optional[str]) -> bool:
        """
        Push a key onto the history stack.

        Returns:
            False if the key is already being resolved (a live cycle), True otherwise
        """
        if key is None or key in state.history:
            return False
        state.history.append(key)
        return True

    def leave(self, state: ResolutionState, key: str) -> None:
        """Pop a key pushed by enter()."""
        if state.history and state.history[-1] == key:
            state.history.pop()
        elif key in state.history:
            state.history.remove(key)

    def record_kept(self, state: ResolutionState, destination: str) -> None:
        """Record a reference the static check flagged and tolerant mode keeps in place."""
        state.circular = True
        if destination not in state.circular_refs:
            state.circular_refs.append(destination)

    def record_circular(self, state: ResolutionState, destination: str, tolerant: bool) -> None:
        """
        Record a live cycle on the state.

        Raises:
            CircularReferenceError: Unless tolerant
        """
        state.circular = True
        state.circular_refs.append(destination)
        if tolerant:
            logger.warning(f"Circular reference kept unresolved: {destination}")
            return

        state.error = CircularReferenceError(
            f"circular references found: {', '.join(state.circular_refs)}",
            references=state.circular_refs,
        )
        raise state.error
