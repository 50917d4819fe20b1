"""
Environment-driven defaults for the dereferencing engine.

Values are read once at import time. Scripts load `.env` files with
python-dotenv before importing the engine so that these pick up overrides.
"""

import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Base directory for relative file references; None means the working directory
DEFAULT_BASE_DIRECTORY = os.getenv("SCHEMA_DEREF_BASE_DIR") or None

DEFAULT_FAIL_ON_MISSING = _env_flag("SCHEMA_DEREF_FAIL_ON_MISSING")
DEFAULT_REMOVE_IDS = _env_flag("SCHEMA_DEREF_REMOVE_IDS")
DEFAULT_MERGE_ADDITIONAL_PROPERTIES = _env_flag("SCHEMA_DEREF_MERGE_ADDITIONAL_PROPERTIES")
DEFAULT_REMOVE_CIRCULAR = _env_flag("SCHEMA_DEREF_REMOVE_CIRCULAR")

# File extensions parsed as YAML by the built-in file loader
YAML_EXTENSIONS = (".yaml", ".yml")

REF_KEY = "$ref"
ID_KEY = "$id"
