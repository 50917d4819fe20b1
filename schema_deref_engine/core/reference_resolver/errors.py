"""
Error kinds raised by the dereferencing engine.

Every error except LoaderError is terminal for a top-level resolution call.
LoaderError is raised by loaders and recovered by the engine, which treats the
reference as missing.
"""

from typing import List, Optional


class DerefError(Exception):
    """Base class for all dereferencing errors."""


class SelfReferenceError(DerefError):
    """A reference points at one of its own ancestors or descendants."""

    def __init__(self, message: str = "Circular self reference"):
        super().__init__(message)


class CircularReferenceError(DerefError):
    """A reference chain revisits a destination that is already being resolved."""

    def __init__(self, message: str, references: Optional[List[str]] = None):
        super().__init__(message)
        self.references = list(references or [])


class MissingReferenceError(DerefError):
    """A reference destination could not be resolved (only with fail_on_missing)."""

    def __init__(self, reference: str):
        super().__init__(f"Missing $ref: {reference}")
        self.reference = reference


class MalformedInputError(DerefError):
    """The input document cannot be fingerprinted or serialized."""


class LoaderError(DerefError):
    """A loader found the destination but could not turn it into a document."""
