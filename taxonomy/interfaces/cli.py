"""
interfaces/cli.py
──────────────────────────────────────────────────────────────────────────────
Command-line interface for browsing a taxonomy model.

Usage:
  # First page of occupations, newest first
  python -m taxonomy.interfaces.cli --model-id 64f0c0ffee... --collection occupations

  # Next page, 10 items, oldest first
  python -m taxonomy.interfaces.cli -m 64f0... -c occupations -l 10 --asc --cursor eyJpZCI6...

  # One entity
  python -m taxonomy.interfaces.cli -m 64f0... -c occupationGroups --id 64f1...

  # Check a code against its grammar
  python -m taxonomy.interfaces.cli --validate-code 2654.1 --kind ESCOOccupation

  # Via installed entry-point (pyproject.toml [project.scripts])
  taxonomy-browse -m 64f0... -c occupations --json

Exit codes:
  0 — success
  1 — fatal error (DB, corrupt data, etc.)
  2 — argument error (bad cursor, bad limit, invalid code)
"""
from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from taxonomy.domain.code_grammar import CodeKind, validate_code
from taxonomy.domain.exceptions import (
    InvalidCodeFormatError,
    InvalidCursorError,
    TaxonomyError,
)
from taxonomy.domain.models import DEFAULT_LIMIT, Collection, EntityView, Page, PageRequest
from taxonomy.services.container import get_paginator

logger = logging.getLogger(__name__)


# ── Argument parser ────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="taxonomy-browse",
        description="Page through occupation groups and occupations of a taxonomy model.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument(
        "--model-id", "-m",
        metavar="ID",
        dest="model_id",
        help="Identifier of the taxonomy model.",
    )
    p.add_argument(
        "--collection", "-c",
        choices=[c.value for c in Collection],
        default=Collection.OCCUPATIONS.value,
        help="Collection to browse. (default: occupations)",
    )
    p.add_argument(
        "--limit", "-l",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Items per page. (default: {DEFAULT_LIMIT})",
    )
    p.add_argument(
        "--cursor",
        metavar="TOKEN",
        help="next_cursor token from a previous page.",
    )
    p.add_argument(
        "--asc",
        action="store_true",
        help="Oldest first instead of newest first.",
    )
    p.add_argument(
        "--id",
        metavar="ENTITY_ID",
        dest="entity_id",
        help="Show a single entity instead of a page.",
    )
    p.add_argument(
        "--validate-code",
        metavar="CODE",
        dest="code",
        help="Validate CODE against the grammar selected by --kind.",
    )
    p.add_argument(
        "--kind", "-k",
        choices=[k.value for k in CodeKind],
        help="Code grammar used by --validate-code.",
    )
    p.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output results as JSON.",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    return p


# ── Formatting helpers ─────────────────────────────────────────────────────

def _print_view_text(view: EntityView) -> None:
    e = view.entity
    print(f"  [{e.code}] {e.preferred_label}  ({e.object_type.value}, id={e.id})")
    if view.parent:
        print(f"       Parent  : [{view.parent.code}] {view.parent.preferred_label}")
    if view.children:
        print(f"       Children: {', '.join(c.code for c in view.children)}")
    for s in view.requires_skills:
        relation = s.relation_type.value if s.relation_type else "—"
        print(f"       Skill   : {s.preferred_label} ({relation})")


def _print_page_text(page: Page) -> None:
    print(f"\n{'─' * 60}")
    print(f"Items : {len(page.items)}  |  Limit: {page.limit}")
    print(f"{'─' * 60}")
    for view in page.items:
        _print_view_text(view)
    print(f"\nNext cursor: {page.next_cursor or '(none — last page)'}\n")


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


# ── Main logic ─────────────────────────────────────────────────────────────

def _run_validate(args: argparse.Namespace) -> int:
    if not args.kind:
        print("ERROR: --validate-code requires --kind", file=sys.stderr)
        return 2
    try:
        validate_code(args.code, CodeKind(args.kind))
    except InvalidCodeFormatError as exc:
        print(f"INVALID: {exc}", file=sys.stderr)
        return 2
    print(f"OK: {args.code!r} is a valid {args.kind} code")
    return 0


def run(args: argparse.Namespace) -> int:
    """Execute the requested action.

    Returns:
        Exit code (0 = success, 1 = error, 2 = bad input).
    """
    if args.code is not None:
        return _run_validate(args)

    if not args.model_id:
        print("ERROR: provide --model-id", file=sys.stderr)
        return 2

    # Only argument validation maps to exit code 2; stored-data problems are 1
    collection = Collection(args.collection)
    request = None
    if not args.entity_id:
        try:
            request = PageRequest(
                model_id=args.model_id,
                collection=collection,
                cursor=args.cursor,
                limit=args.limit,
                descending=not args.asc,
            )
        except ValidationError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 2

    try:
        paginator = get_paginator()
    except Exception as exc:
        logger.exception("Failed to initialise paginator")
        print(f"ERROR: Initialisation failed: {exc}", file=sys.stderr)
        return 1

    try:
        if request is None:
            view = paginator.get(args.model_id, collection, args.entity_id)
            if view is None:
                print(f"ERROR: {collection.value} {args.entity_id} not found", file=sys.stderr)
                return 1
            if args.json_output:
                _print_json(view.to_dict())
            else:
                _print_view_text(view)
            return 0

        page = paginator.page(request)
    except InvalidCursorError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    except TaxonomyError as exc:
        logger.exception("Browsing failed")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.json_output:
        _print_json(page.to_dict())
    else:
        _print_page_text(page)
    return 0


def main() -> None:
    """Entry point for the taxonomy-browse console script."""
    parser = _build_parser()
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    if not args.model_id and args.code is None:
        parser.print_help()
        sys.exit(2)

    sys.exit(run(args))


if __name__ == "__main__":
    main()
