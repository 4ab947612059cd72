"""CLI entry point for the job aggregation pipeline."""

import argparse
import asyncio
import logging
import sys

from jobpipe.core.config import Settings
from jobpipe.core.db import init_db, insert_search_run, utcnow
from jobpipe.core.errors import ConfigError, InputError
from jobpipe.core.schemas import FilterCriteria, SearchCriteria
from jobpipe.llm import available_providers
from jobpipe.pipeline.aggregator import Aggregator
from jobpipe.pipeline.classifier import ClassificationClient
from jobpipe.pipeline.config_manager import AIConfigManager
from jobpipe.pipeline.orchestrator import (
    FilterOrchestrator,
    export_result_json,
    save_filtered,
)
from jobpipe.sources import available_sources


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job aggregation pipeline - search job boards, filter and classify listings",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- search subcommand ---
    search_parser = subparsers.add_parser("search", help="Search job boards")
    _add_common(search_parser)
    search_parser.add_argument("keywords", help="Search keywords")
    search_parser.add_argument("--location", help="Location to search in")
    search_parser.add_argument("--page", type=int, default=1, help="Result page (default: 1)")
    search_parser.add_argument(
        "--sources",
        nargs="+",
        choices=available_sources(),
        help="Sources to query (default: configured default_sources)",
    )
    search_parser.add_argument(
        "--timeout",
        type=float,
        help="Per-source timeout in seconds (default: from config)",
    )
    search_parser.add_argument(
        "--include", nargs="+", default=[], help="Keep listings mentioning any keyword"
    )
    search_parser.add_argument(
        "--exclude", nargs="+", default=[], help="Drop listings whose title has a keyword"
    )
    search_parser.add_argument("--min-salary", type=float, help="Minimum annual salary")
    search_parser.add_argument(
        "--use-ai",
        action="store_true",
        help="Classify survivors with the user's active AI config",
    )
    search_parser.add_argument(
        "--user", default="local", help="User whose AI config is used (default: local)"
    )
    search_parser.add_argument(
        "--context", help="What you are looking for, passed to the classifier"
    )
    search_parser.add_argument(
        "--store",
        action="store_true",
        help="Save surviving listings to the database",
    )
    search_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )

    # --- config subcommand ---
    config_parser = subparsers.add_parser("config", help="Manage AI configurations")
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)

    list_parser = config_sub.add_parser("list", help="List a user's AI configs")
    _add_common(list_parser)
    list_parser.add_argument("--user", default="local", help="User id (default: local)")

    create_parser = config_sub.add_parser("create", help="Create an AI config")
    _add_common(create_parser)
    create_parser.add_argument("--user", default="local", help="User id (default: local)")
    create_parser.add_argument(
        "--provider", required=True, choices=available_providers(), help="Backend kind"
    )
    create_parser.add_argument("--model", required=True, help="Model name")
    create_parser.add_argument("--endpoint", help="Backend base URL")
    create_parser.add_argument("--credential", help="API key for hosted backends")
    create_parser.add_argument(
        "--activate", action="store_true", help="Make it the active config"
    )

    activate_parser = config_sub.add_parser("activate", help="Activate an AI config")
    _add_common(activate_parser)
    activate_parser.add_argument("config_id", type=int, help="Config id")
    activate_parser.add_argument("--user", default="local", help="User id (default: local)")

    # --- serve subcommand ---
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    _add_common(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    """Load settings, falling back to defaults when the file does not exist."""
    try:
        return Settings.from_yaml(path)
    except FileNotFoundError:
        logging.getLogger(__name__).info("No config at %s, using defaults", path)
        return Settings()


async def run_search(settings: Settings, args: argparse.Namespace) -> None:
    """Aggregate, filter, and optionally classify and store one search."""
    conn = init_db(settings.database.path)
    try:
        criteria = SearchCriteria(
            keywords=args.keywords, location=args.location, page=args.page
        )

        started_at = utcnow()
        aggregation = await Aggregator(settings).aggregate(criteria, args.sources, args.timeout)
        insert_search_run(conn, criteria, aggregation, started_at, utcnow())

        print(f"\nAggregated {len(aggregation.listings)} listings "
              f"({aggregation.total_count} reported by sources).")
        for source, reason in sorted(aggregation.source_errors.items()):
            print(f"  {source.value}: {reason}")

        filter_criteria = FilterCriteria(
            include_keywords=args.include,
            exclude_keywords=args.exclude,
            min_salary=args.min_salary,
            use_ai=args.use_ai,
            ai_context=args.context,
        )
        active = AIConfigManager(conn).get_active(args.user) if args.use_ai else None
        orchestrator = FilterOrchestrator(ClassificationClient(settings.classification))
        result = await orchestrator.filter(aggregation.listings, filter_criteria, active)

        mode = "criteria + AI" if result.ai_applied else "criteria only"
        print(f"Filtered ({mode}): {result.filtered_count} of {result.original_count} kept.")
        for item in result.listings:
            listing = item.listing
            line = f"  [{listing.source.value}] {listing.title} - {listing.company}"
            if item.verdict is not None:
                line += f" (confidence {item.verdict.confidence_score:.0f})"
            print(line)

        if args.store:
            new_count = save_filtered(conn, result, user_id=args.user)
            print(f"{new_count} new listings written to DB.")

        if args.export == "json":
            print(f"\n{export_result_json(result)}")
    finally:
        conn.close()


def cmd_config(settings: Settings, args: argparse.Namespace) -> None:
    """Handle config subcommands."""
    conn = init_db(settings.database.path)
    manager = AIConfigManager(conn)
    try:
        if args.config_command == "list":
            configs = manager.list_configs(args.user)
            if not configs:
                print(f"No AI configs for '{args.user}'.")
            for cfg in configs:
                marker = "*" if cfg.is_active else " "
                endpoint = cfg.endpoint or "default endpoint"
                print(f"{marker} {cfg.id}: {cfg.provider.value} {cfg.model} ({endpoint})")
        elif args.config_command == "create":
            cfg = manager.create_config(
                args.user,
                args.provider,
                args.model,
                endpoint=args.endpoint,
                credential=args.credential,
            )
            if args.activate:
                cfg = manager.activate(args.user, cfg.id)
            state = "active" if cfg.is_active else "inactive"
            print(f"Created AI config {cfg.id} ({state}).")
        elif args.config_command == "activate":
            cfg = manager.activate(args.user, args.config_id)
            print(f"Activated AI config {cfg.id}: {cfg.provider.value} {cfg.model}")
    finally:
        conn.close()


def cmd_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    from jobpipe.api import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "search":
            asyncio.run(run_search(settings, args))
        elif args.command == "config":
            cmd_config(settings, args)
        elif args.command == "serve":
            cmd_serve(settings, args)
    except (InputError, ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
