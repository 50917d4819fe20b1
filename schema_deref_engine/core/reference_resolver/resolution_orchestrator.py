"""
Resolution orchestrator component.

This is the central component that manages the recursive resolution of "$ref"
nodes. It uses the other components as stateless tools: the traversal engine
walks documents, the classifier recognizes reference nodes, the path resolver
and loaders produce candidate values, and the circular reference detector
guards every step.

Core features:
- Local references resolved against a pristine copy of their document
- External documents loaded once per call, fully resolved, and cached
- Relative file references resolved against the directory of the document
  they appear in
- Static and dynamic circular reference detection, with a tolerant mode that
  keeps circular references in place
- Missing references either kept in place and reported, or fatal
"""

import copy
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

from schema_deref_engine.core.reference_resolver import traversal
from schema_deref_engine.core.reference_resolver.cache_manager import DocumentCache
from schema_deref_engine.core.reference_resolver.classifier import classify
from schema_deref_engine.core.reference_resolver.config import ID_KEY, REF_KEY
from schema_deref_engine.core.reference_resolver.detector import CircularReferenceDetector
from schema_deref_engine.core.reference_resolver.errors import LoaderError, MissingReferenceError
from schema_deref_engine.core.reference_resolver.loaders import get_loader, resolve_file_path
from schema_deref_engine.core.reference_resolver.models import (
    DerefOptions,
    DocumentContext,
    PathSegment,
    ReferenceDescriptor,
    ReferenceType,
    ResolutionResult,
    ResolutionState,
    TraversalAction,
    TraversalContext,
)
from schema_deref_engine.core.reference_resolver.path_resolver import NOT_FOUND, resolve_path, split_pointer
from schema_deref_engine.core.reference_resolver.utils import deep_merge, fingerprint_document

logger = logging.getLogger(__name__)

OptionsLike = Union[DerefOptions, Mapping[str, Any], None]


def coerce_options(options: OptionsLike = None, **overrides: Any) -> DerefOptions:
    """
    Build normalized DerefOptions from an options object or a mapping.

    Keyword overrides take precedence and accept the same names as the mapping
    form (snake_case or camelCase).
    """
    if isinstance(options, DerefOptions):
        values = {name: getattr(options, name) for name in DerefOptions.__dataclass_fields__}
    else:
        values = dict(options or {})
    values.update(overrides)
    return DerefOptions.from_mapping(values)


class _ResolutionRun:
    """
    State owned by a single top-level resolution call.

    Holds the options, the resolution state and the document cache, and is
    discarded when the call returns.
    """

    def __init__(self, options: DerefOptions, state: ResolutionState, detector: CircularReferenceDetector):
        self.options = options
        self.state = state
        self.detector = detector
        self.cache = DocumentCache()

    def open_document(self, document: Any, document_id: str) -> Tuple[Any, DocumentContext]:
        """
        Run the static check on a document and prepare it for resolution.

        Returns:
            A working copy to substitute into, and the context that local
            references of the document resolve against
        """
        pristine = copy.deepcopy(document)
        keep_paths = self.detector.check_local_circular(pristine, tolerant=self.options.remove_circular)
        context = DocumentContext(
            root=pristine,
            document_id=document_id,
            keep_paths=keep_paths,
        )
        return copy.deepcopy(document), context

    def resolve_tree(self, node: Any, document: DocumentContext, origin: Tuple[PathSegment, ...] = ()) -> Any:
        """
        Resolve every reference in node.

        Args:
            node: Tree to resolve in place (a fresh copy owned by this run)
            document: Document the tree belongs to
            origin: Path of node inside its document

        Returns:
            The resolved tree; a new value if node itself is a reference node
        """
        descriptor = classify(node)
        if descriptor is not None:
            return self.resolve_reference(node, descriptor, document, origin)

        def visit(context: TraversalContext, value: Any) -> Optional[TraversalAction]:
            child = classify(value)
            if child is None:
                return None
            resolved = self.resolve_reference(value, child, document, origin + context.path)
            # The resolved value has been resolved recursively already
            return TraversalAction.replace_and_stop(resolved)

        return traversal.for_each(node, visit)

    def resolve_reference(
        self,
        node: dict,
        descriptor: ReferenceDescriptor,
        document: DocumentContext,
        path: Tuple[PathSegment, ...],
    ) -> Any:
        """
        Resolve one reference node.

        Returns:
            The resolved value, or node itself when the reference is kept
            unresolved (circular in tolerant mode, or missing)

        Raises:
            CircularReferenceError: On a live cycle, unless remove_circular is set
            MissingReferenceError: On a missing destination, if fail_on_missing is set
        """
        path_string = "/".join(str(segment) for segment in path)
        if path_string in document.keep_paths:
            logger.debug(f"Keeping circular reference at {path_string}: {descriptor.destination}")
            self.detector.record_kept(self.state, descriptor.destination)
            return node

        canonical_id = self._canonical_id(descriptor)
        key = self.detector.history_key(descriptor, document.document_id, canonical_id)
        if not self.detector.enter(self.state, key):
            self.detector.record_circular(self.state, descriptor.destination, self.options.remove_circular)
            return node

        try:
            logger.debug(f"Resolving {descriptor.type} reference {descriptor.destination} at /{path_string}")
            if descriptor.is_local:
                value = self._resolve_local(descriptor, document)
            else:
                value = self._resolve_external(descriptor, canonical_id)
        finally:
            self.detector.leave(self.state, key)

        if value is NOT_FOUND:
            self.state.record_missing(descriptor.destination)
            if self.options.fail_on_missing:
                self.state.error = MissingReferenceError(descriptor.destination)
                raise self.state.error
            logger.warning(f"Missing $ref left unresolved: {descriptor.destination}")
            return node

        if self.options.remove_ids and isinstance(value, dict):
            value.pop(ID_KEY, None)

        if self.options.merge_additional_properties:
            value = self._merge_siblings(node, value, document, path)

        self.state.clear_missing(descriptor.destination)
        return value

    def _merge_siblings(self, node: dict, value: Any, document: DocumentContext, path: Tuple[PathSegment, ...]) -> Any:
        siblings = {key: item for key, item in node.items() if key != REF_KEY}
        if not siblings:
            return value
        if not isinstance(value, dict):
            logger.debug(f"Cannot merge sibling properties into non-object value of {node[REF_KEY]}")
            return value

        siblings = self.resolve_tree(copy.deepcopy(siblings), document, path)
        return deep_merge(value, siblings)

    def _canonical_id(self, descriptor: ReferenceDescriptor) -> Optional[str]:
        if descriptor.is_local:
            return None
        if descriptor.type == ReferenceType.FILE.value:
            return str(resolve_file_path(descriptor.destination, self.state.base_directory))
        return descriptor.location

    def _resolve_local(self, descriptor: ReferenceDescriptor, document: DocumentContext) -> Any:
        target = resolve_path(document.root, descriptor.destination)
        if target is NOT_FOUND:
            return NOT_FOUND

        origin = tuple(split_pointer(descriptor.destination))
        return self.resolve_tree(copy.deepcopy(target), document, origin)

    def _resolve_external(self, descriptor: ReferenceDescriptor, canonical_id: str) -> Any:
        loader = get_loader(descriptor.type, self.options)
        if loader is None:
            logger.warning(f"No loader registered for reference type '{descriptor.type}'")
            return NOT_FOUND

        if canonical_id in self.cache:
            resolved_document = self.cache.get(canonical_id)
        else:
            try:
                loaded = loader(descriptor.destination, self.options.with_base_directory(self.state.base_directory))
            except LoaderError as e:
                logger.warning(f"Failed to load {descriptor.destination}: {e}")
                return NOT_FOUND
            if loaded is None:
                return NOT_FOUND

            resolved_document = self._resolve_loaded(loaded, descriptor, canonical_id)
            self.cache.set(canonical_id, resolved_document)

        pointer = descriptor.pointer
        target = resolved_document if pointer is None else resolve_path(resolved_document, pointer)
        if target is NOT_FOUND:
            return NOT_FOUND
        return copy.deepcopy(target)

    def _resolve_loaded(self, loaded: Any, descriptor: ReferenceDescriptor, canonical_id: str) -> Any:
        """Fully resolve a freshly loaded document relative to its own location."""
        if descriptor.type == ReferenceType.FILE.value:
            base_directory = str(Path(canonical_id).parent)
        else:
            base_directory = self.state.base_directory

        working, context = self.open_document(loaded, canonical_id)

        previous_base = self.state.base_directory
        self.state.base_directory = base_directory
        try:
            logger.debug(f"Resolving loaded document {canonical_id} (base directory {base_directory})")
            return self.resolve_tree(working, context, ())
        finally:
            self.state.base_directory = previous_base


class ResolutionOrchestrator:
    """
    Resolves "$ref" nodes of a document into inlined values.

    The orchestrator keeps no per-call state: every call gets its own
    resolution state and document cache, so one instance can be reused for
    any number of sequential calls.
    """

    def __init__(self, options: OptionsLike = None, detector: Optional[CircularReferenceDetector] = None):
        """
        Initialize the orchestrator.

        Args:
            options: Default options for calls that do not pass their own
            detector: Circular reference detector (a default one if None)
        """
        self.options = coerce_options(options)
        self.detector = detector or CircularReferenceDetector()

    def resolve(self, document: Any, options: OptionsLike = None) -> Any:
        """
        Resolve all references in a document.

        Args:
            document: The document to resolve (never mutated)
            options: Options for this call. A DerefOptions replaces the orchestrator
                defaults; a mapping overrides only the options it names

        Returns:
            The resolved document

        Raises:
            MalformedInputError: If the document cannot be fingerprinted
            SelfReferenceError: If a local reference points at its own ancestor or descendant
            CircularReferenceError: On circular references, unless remove_circular is set
            MissingReferenceError: On unresolvable references, if fail_on_missing is set
        """
        return self.resolve_with_report(document, options).document

    def resolve_with_report(self, document: Any, options: OptionsLike = None) -> ResolutionResult:
        """
        Resolve all references in a document and report what could not be resolved.

        Args:
            document: The document to resolve (never mutated)
            options: Options for this call. A DerefOptions replaces the orchestrator
                defaults; a mapping overrides only the options it names

        Returns:
            ResolutionResult with the resolved document, the fingerprint of the
            input, and the missing and circular references that were kept in place
        """
        options = self._options_for_call(options)
        fingerprint = fingerprint_document(document)
        state = ResolutionState(fingerprint=fingerprint, base_directory=options.base_directory)
        run = _ResolutionRun(options, state, self.detector)

        logger.info(f"Starting resolution of document {fingerprint[:12]} (base directory {options.base_directory})")

        working, context = run.open_document(document, fingerprint)
        resolved = run.resolve_tree(working, context, ())

        logger.info(
            f"Resolution complete: {len(state.missing)} missing, {len(state.circular_refs)} circular, "
            f"{len(run.cache)} external document(s) loaded"
        )

        return ResolutionResult(
            document=resolved,
            fingerprint=fingerprint,
            missing_references=list(state.missing),
            circular_references=list(state.circular_refs),
        )

    def _options_for_call(self, options: OptionsLike) -> DerefOptions:
        if options is None:
            return self.options
        if isinstance(options, DerefOptions):
            return coerce_options(options)
        return coerce_options(self.options, **dict(options))


def resolve(document: Any, options: OptionsLike = None, **overrides: Any) -> Any:
    """
    Resolve all "$ref" nodes of a document.

    Args:
        document: The document to resolve (never mutated)
        options: DerefOptions or a mapping of option names to values
        **overrides: Individual options, e.g. fail_on_missing=True or baseFolder="schemas"

    Returns:
        The resolved document
    """
    return ResolutionOrchestrator(coerce_options(options, **overrides)).resolve(document)


def resolve_with_report(document: Any, options: OptionsLike = None, **overrides: Any) -> ResolutionResult:
    """Like resolve(), but return a ResolutionResult including missing and circular references."""
    return ResolutionOrchestrator(coerce_options(options, **overrides)).resolve_with_report(document)
