"""
JSON Schema "$ref" dereferencing module.

This module resolves "$ref" indirection inside JSON-Schema-like documents into
fully inlined values, following references within the same document and into
other documents loaded from files or user-registered loaders.

The main entry points are the resolve() function and the ResolutionOrchestrator
class in resolution_orchestrator.py.
"""

# Main entry points
from schema_deref_engine.core.reference_resolver.resolution_orchestrator import (
    ResolutionOrchestrator,
    resolve,
    resolve_with_report,
)

# Core components
from schema_deref_engine.core.reference_resolver.cache_manager import DocumentCache
from schema_deref_engine.core.reference_resolver.classifier import classify
from schema_deref_engine.core.reference_resolver.detector import CircularReferenceDetector
from schema_deref_engine.core.reference_resolver.loaders import load_file
from schema_deref_engine.core.reference_resolver.path_resolver import NOT_FOUND, resolve_path
from schema_deref_engine.core.reference_resolver.traversal import for_each, reduce

# Data models
from schema_deref_engine.core.reference_resolver.models import (
    DerefOptions,
    ReferenceDescriptor,
    ReferenceType,
    ResolutionResult,
    TraversalAction,
    TraversalContext,
)

# Errors
from schema_deref_engine.core.reference_resolver.errors import (
    CircularReferenceError,
    DerefError,
    LoaderError,
    MalformedInputError,
    MissingReferenceError,
    SelfReferenceError,
)

__all__ = [
    # Main entry points
    'resolve',
    'resolve_with_report',
    'ResolutionOrchestrator',

    # Core components
    'CircularReferenceDetector',
    'DocumentCache',
    'classify',
    'for_each',
    'reduce',
    'resolve_path',
    'load_file',
    'NOT_FOUND',

    # Data models
    'DerefOptions',
    'ReferenceDescriptor',
    'ReferenceType',
    'ResolutionResult',
    'TraversalAction',
    'TraversalContext',

    # Errors
    'DerefError',
    'SelfReferenceError',
    'CircularReferenceError',
    'MissingReferenceError',
    'MalformedInputError',
    'LoaderError',
]
