"""CLI entrypoint for folio."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel

from folio.api.content_api import (
    get_admin_item,
    get_public_item,
    list_admin_items,
    list_classifications,
    list_public_items,
    list_related_public_items,
)
from folio.api.models import NOT_FOUND
from folio.config.loader import (
    get_database_url,
    get_log_level,
    get_revalidation_settings,
    get_slow_query_threshold_ms,
    load_config,
)
from folio.database.client import session_context
from folio.database.entities import DESCRIPTORS, EntityKind
from folio.database.inspector import SchemaInspector
from folio.database.query_builder import Pagination
from folio.database.query_monitor import get_query_stats, set_slow_query_threshold
from folio.database.schema import create_all
from folio.ops.cache_tags import MUTATION_TARGETS, tags_for_mutation, trigger_revalidation
from folio.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _load_runtime(args: argparse.Namespace) -> Dict[str, Any]:
    """Load config, configure logging and the slow-query threshold."""
    config = load_config(args.config)
    configure_logging(get_log_level(config))
    set_slow_query_threshold(get_slow_query_threshold_ms(config))
    return config


def _print_json(payload: Any) -> None:
    def _default(value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump()
        return str(value)

    print(json.dumps(payload, indent=2, default=_default))


def _dump(items: List[BaseModel]) -> List[Dict[str, Any]]:
    return [item.model_dump() for item in items]


def _pagination(args: argparse.Namespace) -> Pagination | None:
    if args.limit is None and args.offset is None:
        return None
    return Pagination(limit=args.limit, offset=args.offset)


def cmd_items_list(args: argparse.Namespace) -> None:
    """List items of a kind (public view unless --admin)."""
    config = _load_runtime(args)
    inspector = SchemaInspector()
    with session_context(get_database_url(config)) as session:
        if args.admin:
            result = list_admin_items(session, inspector, args.kind, _pagination(args), status=args.status)
            _print_json(result.to_dict())
            if not result.success:
                sys.exit(1)
            return
        items = list_public_items(session, inspector, args.kind, pagination=_pagination(args))
        _print_json(_dump(items))


def cmd_items_get(args: argparse.Namespace) -> None:
    """Show one item by slug."""
    config = _load_runtime(args)
    inspector = SchemaInspector()
    with session_context(get_database_url(config)) as session:
        if args.admin:
            result = get_admin_item(session, inspector, args.kind, args.slug)
            _print_json(result.to_dict())
            if not result.found:
                sys.exit(1)
            return
        item = get_public_item(session, inspector, args.kind, args.slug)
        if item is NOT_FOUND:
            print(f"No visible {args.kind} item with slug '{args.slug}'", file=sys.stderr)
            sys.exit(1)
        _print_json(item.model_dump())


def cmd_items_related(args: argparse.Namespace) -> None:
    """List visible items sharing a category with SLUG."""
    config = _load_runtime(args)
    inspector = SchemaInspector()
    with session_context(get_database_url(config)) as session:
        category = args.category
        if category is None:
            current = get_public_item(session, inspector, args.kind, args.slug)
            if current is NOT_FOUND:
                print(f"No visible {args.kind} item with slug '{args.slug}'", file=sys.stderr)
                sys.exit(1)
            category = current.category
        items = list_related_public_items(
            session, inspector, args.kind, args.slug, category, limit=args.limit
        )
        _print_json(_dump(items))


def cmd_classifications(args: argparse.Namespace) -> None:
    """List classifications with usage counts."""
    config = _load_runtime(args)
    inspector = SchemaInspector()
    with session_context(get_database_url(config)) as session:
        details = list_classifications(session, inspector, args.kind, secondary=args.secondary)
        _print_json(_dump(details))


def cmd_schema(args: argparse.Namespace) -> None:
    """Print the detected feature maps for every content table."""
    config = _load_runtime(args)
    inspector = SchemaInspector()
    kinds = [EntityKind(args.kind)] if args.kind else list(DESCRIPTORS)
    with session_context(get_database_url(config)) as session:
        for kind in kinds:
            inspector.content_features(session, kind)
        payload: Dict[str, Any] = {"tables": inspector.snapshot()}
    if args.stats:
        payload["query_stats"] = get_query_stats()
    _print_json(payload)


def cmd_invalidate(args: argparse.Namespace) -> None:
    """Send cache tags for a mutation to the revalidation endpoint."""
    config = _load_runtime(args)
    tags = tags_for_mutation(args.kind, args.target)
    if args.dry_run:
        _print_json({"type": args.kind, "slug": args.slug, "tags": tags})
        return
    if not trigger_revalidation(args.kind, tags, get_revalidation_settings(config), slug=args.slug):
        print("Revalidation failed (see log)", file=sys.stderr)
        sys.exit(1)
    print(f"Revalidated {len(tags)} tag(s)")


def cmd_init_db(args: argparse.Namespace) -> None:
    """Create the current schema (missing tables only)."""
    config = _load_runtime(args)
    url = get_database_url(config)
    create_all(url)
    logger.info(f"Schema created at {url}")
    print(f"Schema ready: {url}")


def _add_kind(parser: argparse.ArgumentParser, required: bool = True) -> None:
    parser.add_argument(
        "--kind",
        type=str,
        choices=[kind.value for kind in EntityKind],
        default=EntityKind.POST.value if required else None,
        help="Content kind (default: post)" if required else "Content kind (default: all)",
    )


def main() -> None:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="folio",
        description="Schema-adaptive read layer for blog posts and portfolio items",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config YAML (default: folio.config.yaml if present)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # items commands
    items_parser = subparsers.add_parser("items", help="Read content items")
    items_subparsers = items_parser.add_subparsers(dest="items_command", help="Item commands")

    items_list_parser = items_subparsers.add_parser("list", help="List items, newest first")
    _add_kind(items_list_parser)
    items_list_parser.add_argument("--admin", action="store_true", help="Admin view (all statuses)")
    items_list_parser.add_argument("--status", type=str, help="Admin only: filter by status")
    items_list_parser.add_argument("--limit", type=int, help="Page size (needs --offset)")
    items_list_parser.add_argument("--offset", type=int, help="Page offset (needs --limit)")
    items_list_parser.set_defaults(func=cmd_items_list)

    items_get_parser = items_subparsers.add_parser("get", help="Show one item by slug")
    items_get_parser.add_argument("slug", type=str, help="Item slug")
    _add_kind(items_get_parser)
    items_get_parser.add_argument("--admin", action="store_true", help="Admin view (any status)")
    items_get_parser.set_defaults(func=cmd_items_get)

    items_related_parser = items_subparsers.add_parser("related", help="Related items for a slug")
    items_related_parser.add_argument("slug", type=str, help="Slug of the current item (excluded)")
    _add_kind(items_related_parser)
    items_related_parser.add_argument(
        "--category",
        type=str,
        help="Category name (default: the current item's category)",
    )
    items_related_parser.add_argument("--limit", type=int, default=3, help="Max items (default: 3)")
    items_related_parser.set_defaults(func=cmd_items_related)

    # classifications command
    classifications_parser = subparsers.add_parser("classifications", help="List categories/project types")
    _add_kind(classifications_parser)
    classifications_parser.add_argument(
        "--secondary",
        action="store_true",
        help="List the secondary classification (portfolio project types)",
    )
    classifications_parser.set_defaults(func=cmd_classifications)

    # schema command
    schema_parser = subparsers.add_parser("schema", help="Show detected tables and columns")
    _add_kind(schema_parser, required=False)
    schema_parser.add_argument("--stats", action="store_true", help="Include query timing stats")
    schema_parser.set_defaults(func=cmd_schema)

    # invalidate command
    invalidate_parser = subparsers.add_parser("invalidate", help="Revalidate cached pages after a write")
    _add_kind(invalidate_parser)
    invalidate_parser.add_argument(
        "--target",
        type=str,
        choices=list(MUTATION_TARGETS),
        default="item",
        help="What was written (default: item)",
    )
    invalidate_parser.add_argument("--slug", type=str, help="Slug of the written item")
    invalidate_parser.add_argument("--dry-run", action="store_true", help="Print the tags without sending")
    invalidate_parser.set_defaults(func=cmd_invalidate)

    # init-db command
    init_db_parser = subparsers.add_parser("init-db", help="Create the current schema")
    init_db_parser.set_defaults(func=cmd_init_db)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return
    if not hasattr(args, "func"):
        parser.parse_args([args.command, "--help"])
        return

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
