"""
Data models for the reference resolver.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from schema_deref_engine.core.reference_resolver import config


# --- Enums ---

class ReferenceType(Enum):
    """
    Built-in reference types.

    - LOCAL: Pointer into the current document (e.g., "#/definitions/a").
    - FILE: Path to another document, optionally with a fragment (e.g., "common.json#/a").

    Loaders registered under any other name add further types; those are carried
    as plain strings on ReferenceDescriptor.type.
    """
    LOCAL = "local"
    FILE = "file"


class ActionKind(Enum):
    """What the traversal engine should do after visiting a value."""
    KEEP = "keep"
    REPLACE = "replace"
    REPLACE_AND_STOP = "replace_and_stop"


# --- Traversal ---

PathSegment = Union[str, int]


@dataclass(frozen=True)
class TraversalContext:
    """Position of the visited value inside the tree being walked."""
    path: Tuple[PathSegment, ...]
    parent: Any
    key: PathSegment
    root: Any

    @property
    def path_string(self) -> str:
        return "/".join(str(segment) for segment in self.path)


@dataclass(frozen=True)
class TraversalAction:
    """Explicit outcome of a visit callback."""
    kind: ActionKind = ActionKind.KEEP
    value: Any = None

    @property
    def stops(self) -> bool:
        return self.kind == ActionKind.REPLACE_AND_STOP

    @classmethod
    def keep(cls) -> "TraversalAction":
        return cls(ActionKind.KEEP)

    @classmethod
    def replace(cls, value: Any) -> "TraversalAction":
        return cls(ActionKind.REPLACE, value)

    @classmethod
    def replace_and_stop(cls, value: Any) -> "TraversalAction":
        return cls(ActionKind.REPLACE_AND_STOP, value)


# --- References ---

@dataclass(frozen=True)
class ReferenceDescriptor:
    """Type and destination of a reference node."""
    type: str
    destination: str

    @property
    def is_local(self) -> bool:
        return self.type == ReferenceType.LOCAL.value

    @property
    def location(self) -> str:
        """Everything before the '#' marker (empty for local references)."""
        return self.destination.split("#", 1)[0]

    @property
    def pointer(self) -> Optional[str]:
        """Everything after the '#' marker, or None when there is no fragment."""
        if "#" not in self.destination:
            return None
        return self.destination.split("#", 1)[1]


@dataclass(frozen=True)
class LocalReferenceEdge:
    """A local reference found by the static check: the node at from_path points at to_path."""
    from_path: str
    to_path: str
    destination: str


# --- Options ---

Loader = Callable[[str, "DerefOptions"], Any]

# camelCase option names accepted for compatibility with existing callers
_OPTION_ALIASES = {
    "baseFolder": "base_directory",
    "baseDirectory": "base_directory",
    "failOnMissing": "fail_on_missing",
    "removeIds": "remove_ids",
    "mergeAdditionalProperties": "merge_additional_properties",
    "removeCircular": "remove_circular",
}


@dataclass(frozen=True)
class DerefOptions:
    """
    Options for one resolution call.

    Attributes:
        base_directory: Directory that relative file references are resolved against
        fail_on_missing: Raise MissingReferenceError instead of leaving unresolved refs in place
        remove_ids: Strip "$id" from resolved values before substitution
        merge_additional_properties: Merge a reference node's sibling keys over its resolved value
        remove_circular: Keep circular references as-is instead of raising
        loaders: Mapping from reference type name to loader(destination, options)
    """
    base_directory: str = field(default_factory=lambda: config.DEFAULT_BASE_DIRECTORY or os.getcwd())
    fail_on_missing: bool = config.DEFAULT_FAIL_ON_MISSING
    remove_ids: bool = config.DEFAULT_REMOVE_IDS
    merge_additional_properties: bool = config.DEFAULT_MERGE_ADDITIONAL_PROPERTIES
    remove_circular: bool = config.DEFAULT_REMOVE_CIRCULAR
    loaders: Mapping[str, Loader] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]] = None) -> "DerefOptions":
        """
        Build options from a mapping, accepting snake_case and camelCase keys.

        Raises:
            TypeError: If an unknown option name is given
        """
        kwargs: Dict[str, Any] = {}
        for key, value in (values or {}).items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise TypeError(f"Unknown dereferencing option: {key}")
            if value is not None:
                kwargs[name] = value
        return cls(**kwargs).normalized()

    def normalized(self) -> "DerefOptions":
        """Return a copy with an absolute base directory."""
        return replace(self, base_directory=os.path.abspath(str(self.base_directory)))

    def with_base_directory(self, base_directory: str) -> "DerefOptions":
        return replace(self, base_directory=base_directory)


# --- Resolution state ---

@dataclass
class DocumentContext:
    """
    A document that local references are resolved against.

    root is a pristine copy that is never mutated; keep_paths holds reference
    paths the static check flagged and tolerant mode leaves intact.
    """
    root: Any
    document_id: str
    keep_paths: FrozenSet[str] = frozenset()


@dataclass
class ResolutionState:
    """
    Mutable bookkeeping for one top-level resolution call.

    base_directory is the directory relative file references currently resolve
    against; it is switched while a loaded file is being resolved.
    """
    fingerprint: str
    base_directory: str
    history: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    circular_refs: List[str] = field(default_factory=list)
    circular: bool = False
    error: Optional[Exception] = None

    def record_missing(self, destination: str) -> None:
        if destination not in self.missing:
            self.missing.append(destination)

    def clear_missing(self, destination: str) -> None:
        if destination in self.missing:
            self.missing.remove(destination)


@dataclass
class ResolutionResult:
    """The complete output of a resolution call."""
    document: Any
    fingerprint: str
    missing_references: List[str]
    circular_references: List[str]
