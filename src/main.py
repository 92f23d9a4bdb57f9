# src/main.py — v2
"""CLI entry point: check-catalog, validate, aggregate, unlockable commands.

Usage:
    depcontext check-catalog [--catalog FILE]
    depcontext validate <target> --have a,b,c [--catalog FILE]
    depcontext aggregate <target> --have a,b --content contents.json
    depcontext unlockable --have a,b

Results are printed as JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from depcontext.api.facade import ResourceContextService
from depcontext.catalog.catalog import ResourceCatalog
from depcontext.catalog.loader import default_catalog, load_catalog
from depcontext.config.settings import ConfigurationError, Settings
from depcontext.core.errors import DepContextError
from depcontext.logging.logger import setup_logging_from_settings
from depcontext.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        settings = Settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging_from_settings(settings, verbose=args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except DepContextError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="depcontext",
        description=f"depcontext v{__version__}: resource dependency validation and context aggregation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--catalog", type=Path, default=None,
        help="Catalog JSON file (default: CATALOG_PATH or built-in catalog)",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_check = subparsers.add_parser(
        "check-catalog", help="Load the catalog and report its generation order",
    )
    p_check.set_defaults(func=_cmd_check_catalog)

    p_validate = subparsers.add_parser(
        "validate", help="Check whether a resource can be generated",
    )
    p_validate.add_argument("target", help="Resource id to validate")
    _add_have(p_validate)
    p_validate.set_defaults(func=_cmd_validate)

    p_aggregate = subparsers.add_parser(
        "aggregate", help="Build the tiered prompt context for a resource",
    )
    p_aggregate.add_argument("target", help="Resource id to aggregate context for")
    _add_have(p_aggregate)
    p_aggregate.add_argument(
        "--content", type=Path, required=True,
        help="JSON file mapping resource id -> stored content",
    )
    p_aggregate.add_argument(
        "--prompt-only", action="store_true",
        help="Print only the formatted prompt text",
    )
    p_aggregate.set_defaults(func=_cmd_aggregate)

    p_unlock = subparsers.add_parser(
        "unlockable", help="List resources whose prerequisites are satisfied",
    )
    _add_have(p_unlock)
    p_unlock.set_defaults(func=_cmd_unlockable)

    return parser


def _add_have(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--have", default="",
        help="Comma-separated ids the user has already generated",
    )
    parser.add_argument("--user", default="cli", help="User id (default: cli)")


def _parse_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _resolve_catalog(args: argparse.Namespace, settings: Settings) -> ResourceCatalog:
    path = args.catalog or settings.catalog_path
    if path is None:
        return default_catalog(default_cost=settings.default_resource_cost)
    return load_catalog(path, default_cost=settings.default_resource_cost)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _cmd_check_catalog(args: argparse.Namespace, settings: Settings) -> int:
    catalog = _resolve_catalog(args, settings)
    service = ResourceContextService(catalog, settings)
    _print_json({
        "resources": len(catalog),
        "generation_order": service.graph.topological_order(catalog.resource_ids),
    })
    return EXIT_OK


async def _cmd_validate(args: argparse.Namespace, settings: Settings) -> int:
    service = ResourceContextService(_resolve_catalog(args, settings), settings)
    result = await service.validate(args.user, args.target, _parse_ids(args.have))
    _print_json(result.model_dump(mode="json"))
    return EXIT_OK if result.valid else EXIT_INVALID


async def _cmd_aggregate(args: argparse.Namespace, settings: Settings) -> int:
    try:
        contents = json.loads(args.content.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Cannot read content file {args.content}: {exc}", file=sys.stderr)
        return EXIT_ERROR
    if not isinstance(contents, dict):
        print("Content file must contain a JSON object", file=sys.stderr)
        return EXIT_ERROR

    service = ResourceContextService(_resolve_catalog(args, settings), settings)
    context = await service.aggregate(
        args.user, args.target, _parse_ids(args.have), contents,
    )
    if args.prompt_only:
        print(context.formatted_prompt)
    else:
        _print_json(context.model_dump(mode="json"))
    return EXIT_OK


async def _cmd_unlockable(args: argparse.Namespace, settings: Settings) -> int:
    service = ResourceContextService(_resolve_catalog(args, settings), settings)
    _print_json(service.graph.unlockable(_parse_ids(args.have)))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
