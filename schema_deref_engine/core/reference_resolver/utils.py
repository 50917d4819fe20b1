import copy
import hashlib
import json
from typing import Any

from schema_deref_engine.core.reference_resolver.errors import MalformedInputError


def fingerprint_document(document: Any) -> str:
    """
    Compute a stable content fingerprint for a document.

    Raises MalformedInputError if the document cannot be serialized to JSON
    (unsupported value types, or a container that contains itself).
    """
    try:
        data_str = json.dumps(document, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise MalformedInputError(f"Cannot fingerprint document: {e}") from e
    return hashlib.sha256(data_str.encode("utf-8")).hexdigest()


def deep_merge(target: Any, source: Any) -> Any:
    """
    Merge source over target and return the result; neither argument is mutated.

    Dicts merge key by key, lists merge index by index, and any other source
    value replaces the target value.
    """
    if isinstance(target, dict) and isinstance(source, dict):
        merged = copy.deepcopy(target)
        for key, value in source.items():
            merged[key] = deep_merge(merged[key], value) if key in merged else copy.deepcopy(value)
        return merged

    if isinstance(target, list) and isinstance(source, list):
        merged = copy.deepcopy(target)
        for index, value in enumerate(source):
            if index < len(merged):
                merged[index] = deep_merge(merged[index], value)
            else:
                merged.append(copy.deepcopy(value))
        return merged

    return copy.deepcopy(source)
