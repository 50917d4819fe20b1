"""
Loaders turn a reference destination into a document.

A loader is any callable `loader(destination, options)` returning the parsed
document, or None when the destination does not exist. Loaders raise
LoaderError when the destination exists but cannot be read or parsed; the
engine treats both outcomes as a missing reference.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from schema_deref_engine.core.reference_resolver.classifier import get_ref_file_path
from schema_deref_engine.core.reference_resolver.config import YAML_EXTENSIONS
from schema_deref_engine.core.reference_resolver.errors import LoaderError
from schema_deref_engine.core.reference_resolver.models import DerefOptions, Loader, ReferenceType

logger = logging.getLogger(__name__)


def resolve_file_path(ref_value: str, base_directory: str) -> Path:
    """Return the canonical absolute path a file reference points at."""
    file_path = Path(get_ref_file_path(ref_value)).expanduser()
    if not file_path.is_absolute():
        file_path = Path(base_directory) / file_path
    return file_path.resolve()


def load_file(destination: str, options: DerefOptions) -> Optional[Any]:
    """
    Load a JSON or YAML document addressed relative to options.base_directory.

    Args:
        destination: The raw "$ref" value (a fragment, if any, is ignored here)
        options: Options carrying the current base directory

    Returns:
        The parsed document, or None if the file does not exist

    Raises:
        LoaderError: If the file cannot be read or parsed
    """
    file_path = resolve_file_path(destination, options.base_directory)
    if not file_path.is_file():
        logger.debug(f"Referenced file not found: {file_path}")
        return None

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoaderError(f"Cannot read {file_path}: {e}") from e

    try:
        if file_path.suffix.lower() in YAML_EXTENSIONS:
            return yaml.safe_load(content)
        return json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise LoaderError(f"Cannot parse {file_path}: {e}") from e


BUILTIN_LOADERS: Dict[str, Loader] = {
    ReferenceType.FILE.value: load_file,
}


def get_loader(ref_type: str, options: DerefOptions) -> Optional[Loader]:
    """Return the loader for a reference type; user loaders take precedence over built-ins."""
    if ref_type in options.loaders:
        return options.loaders[ref_type]
    return BUILTIN_LOADERS.get(ref_type)
