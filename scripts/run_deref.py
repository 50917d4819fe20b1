#!/usr/bin/env python3
"""
Resolve the "$ref" nodes of a JSON or YAML document and print the result.

Relative file references are resolved against the directory of the input
document unless --base-dir is given.

Usage example:
  poetry run python scripts/run_deref.py schemas/api.json --output build/api.resolved.json
  poetry run python scripts/run_deref.py schemas/api.yaml --fail-on-missing --merge-additional-properties

Environment variables (optional, also read from .env.local / .env):
    SCHEMA_DEREF_BASE_DIR - default base directory for relative file references
    SCHEMA_DEREF_FAIL_ON_MISSING, SCHEMA_DEREF_REMOVE_IDS,
    SCHEMA_DEREF_MERGE_ADDITIONAL_PROPERTIES, SCHEMA_DEREF_REMOVE_CIRCULAR - "true" to enable
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from schema_deref_engine.core.reference_resolver.errors import DerefError
from schema_deref_engine.core.reference_resolver.loaders import load_file
from schema_deref_engine.core.reference_resolver.models import DerefOptions
from schema_deref_engine.core.reference_resolver.resolution_orchestrator import ResolutionOrchestrator

project_root = Path(__file__).resolve().parent.parent


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def _load_document(path: Path) -> Any:
    document = load_file(str(path), DerefOptions(base_directory=str(path.parent)))
    if document is None:
        raise FileNotFoundError(f"Input document not found: {path}")
    return document


def run(input_path: Path, output_path: Optional[Path], options: DerefOptions, indent: int) -> int:
    logger = logging.getLogger(__name__)
    orchestrator = ResolutionOrchestrator(options)

    try:
        document = _load_document(input_path)
        result = orchestrator.resolve_with_report(document)
    except (DerefError, FileNotFoundError) as e:
        logger.error(f"Failed to resolve {input_path}: {e}")
        return 1

    if result.missing_references:
        logger.warning(f"Unresolved references: {', '.join(result.missing_references)}")
    if result.circular_references:
        logger.warning(f"Circular references kept in place: {', '.join(result.circular_references)}")

    text = json.dumps(result.document, indent=indent, ensure_ascii=False)
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text + "\n", encoding="utf-8")
        logger.info(f"Resolved document written to {output_path}")
    else:
        print(text)
    return 0


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    # Load environment variables (prefer local override if present)
    load_dotenv(project_root / ".env.local")
    load_dotenv(project_root / ".env")

    ap = argparse.ArgumentParser(description="Inline the $ref nodes of a JSON/YAML document")
    ap.add_argument("input", help="Path to the JSON or YAML document")
    ap.add_argument("--output", default=None, help="Write the resolved document here instead of stdout")
    ap.add_argument("--base-dir", default=os.getenv("SCHEMA_DEREF_BASE_DIR"),
                    help="Base directory for relative file references (default: directory of the input)")
    ap.add_argument("--fail-on-missing", action="store_true", default=_env_flag("SCHEMA_DEREF_FAIL_ON_MISSING"))
    ap.add_argument("--remove-ids", action="store_true", default=_env_flag("SCHEMA_DEREF_REMOVE_IDS"))
    ap.add_argument("--merge-additional-properties", action="store_true",
                    default=_env_flag("SCHEMA_DEREF_MERGE_ADDITIONAL_PROPERTIES"))
    ap.add_argument("--remove-circular", action="store_true", default=_env_flag("SCHEMA_DEREF_REMOVE_CIRCULAR"))
    ap.add_argument("--indent", type=int, default=2)
    ap.add_argument("--verbose", action="store_true", help="Log every reference as it is resolved")
    args = ap.parse_args()

    if args.verbose:
        logging.getLogger("schema_deref_engine").setLevel(logging.DEBUG)

    input_path = Path(args.input).resolve()
    options = DerefOptions(
        base_directory=args.base_dir or str(input_path.parent),
        fail_on_missing=args.fail_on_missing,
        remove_ids=args.remove_ids,
        merge_additional_properties=args.merge_additional_properties,
        remove_circular=args.remove_circular,
    ).normalized()

    output_path = Path(args.output) if args.output else None
    sys.exit(run(input_path, output_path, options, args.indent))


if __name__ == "__main__":
    main()
