"""CLI entry point for form-foundry.

Usage:
    python -m forms drafts list
    python -m forms drafts show signup
    python -m forms drafts delete signup
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from forms.lib.drafts import DraftStore, create_draft_store
from forms.lib.drafts.base import encode_value
from forms.lib.errors import FormError
from forms.lib.logging import setup_logging
from forms.lib.settings import DRAFT_BACKENDS, EngineSettings

logger = logging.getLogger(__name__)


async def list_drafts(store: DraftStore) -> int:
    """Print every form id with a stored draft."""
    ids = await store.list_ids()
    if not ids:
        print(f"No drafts found ({store.backend})")
        return 0

    print(f"\nDrafts ({store.backend}):")
    print("-" * 40)
    for form_id in ids:
        print(f"  {form_id}")
    print(f"\n{len(ids)} draft(s)")
    return 0


async def show_draft(store: DraftStore, form_id: str) -> int:
    """Print one draft as JSON."""
    values = await store.load(form_id)
    if values is None:
        print(f"No draft for '{form_id}'")
        return 1
    print(json.dumps(encode_value(values), indent=2, sort_keys=True))
    return 0


async def delete_draft(store: DraftStore, form_id: str) -> int:
    if await store.delete(form_id):
        print(f"Deleted draft '{form_id}'")
        return 0
    print(f"No draft for '{form_id}'")
    return 1


def build_store(args: argparse.Namespace) -> DraftStore:
    """Draft store from project settings plus command-line overrides."""
    project_root = Path(args.project_root) if args.project_root else None
    settings = EngineSettings.load(project_root)

    overrides = {}
    if args.backend:
        overrides["draft_backend"] = args.backend
    if args.bucket:
        overrides["s3_bucket"] = args.bucket
    if overrides:
        settings = settings.model_copy(update=overrides)

    store = create_draft_store(settings, project_root)
    logger.debug("Using draft store %r", store)
    return store


def run_drafts_command(args: argparse.Namespace) -> int:
    store = build_store(args)

    if args.action == "list":
        return asyncio.run(list_drafts(store))

    if not args.form_id:
        print(f"Error: 'drafts {args.action}' requires a form id")
        return 2
    if args.action == "show":
        return asyncio.run(show_draft(store, args.form_id))
    return asyncio.run(delete_draft(store, args.form_id))


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="form-foundry",
        description="Inspect form drafts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # List stored drafts using .form-foundry.yaml / FORMS_* settings
    python -m forms drafts list

    # Show one draft
    python -m forms drafts show signup

    # Delete a draft from an S3 bucket
    python -m forms drafts delete signup --backend s3 --bucket my-drafts
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to a file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command")
    drafts = subparsers.add_parser("drafts", help="List, show or delete stored drafts")
    drafts.add_argument("action", choices=["list", "show", "delete"])
    drafts.add_argument("form_id", nargs="?", help="Form id (for show/delete)")
    drafts.add_argument(
        "--project-root",
        help="Directory holding .form-foundry.yaml (default: current directory)",
    )
    drafts.add_argument(
        "--backend",
        choices=sorted(DRAFT_BACKENDS),
        help="Override the configured draft backend",
    )
    drafts.add_argument(
        "--bucket",
        help="S3 bucket (for the s3 backend)",
    )

    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, json_format=args.json_log, log_file=args.log_file)

    if args.command != "drafts":
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(run_drafts_command(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except FormError as e:
        logger.error("%s", e)
        print(f"\nError: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception("Command failed: %s", e)
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
