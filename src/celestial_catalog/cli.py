"""Command line entry point: load Gaia sources into the catalog database.

Usage:
  celestial-catalog-load
  celestial-catalog-load --limit 500 --max-magnitude 12
  celestial-catalog-load --database-url postgresql+psycopg://astro@localhost/catalog
  celestial-catalog-load --print-ddl > database.sql
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from celestial_catalog.catalog import GaiaCatalog
from celestial_catalog.config import load_settings
from celestial_catalog.database import init_database
from celestial_catalog.exceptions import CatalogFetchError, SchemaMismatchError
from celestial_catalog.loader import run_load
from celestial_catalog.schema import render_ddl

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch Gaia sources and load them into the celestial catalog database."
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL (default: CELESTIAL_DATABASE_URL)",
    )
    parser.add_argument(
        "--limit",
        "-n",
        type=int,
        help="Max rows to fetch (default: CELESTIAL_ROW_LIMIT)",
    )
    parser.add_argument(
        "--object-type",
        help="Object type assigned to loaded rows (default: CELESTIAL_OBJECT_TYPE)",
    )
    parser.add_argument(
        "--max-magnitude",
        type=float,
        help="Only fetch sources brighter than this G magnitude",
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Apply changes to existing objects without writing history rows",
    )
    parser.add_argument(
        "--print-ddl",
        action="store_true",
        help="Print the schema DDL script and exit",
    )
    parser.add_argument(
        "--dialect",
        choices=["postgresql", "sqlite"],
        default="postgresql",
        help="Dialect for --print-ddl (default: postgresql)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    catalog: Optional[GaiaCatalog] = None,
) -> int:
    """Run the load and return a process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.print_ddl:
        print(render_ddl(args.dialect), end="")
        return 0

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    limit = args.limit if args.limit is not None else settings.row_limit
    if limit <= 0:
        parser.error("--limit must be positive")

    if catalog is None:
        catalog = GaiaCatalog(table=settings.gaia_table)

    try:
        engine = init_database(args.database_url or settings.database_url)
    except SQLAlchemyError as e:
        logger.error("Cannot open database: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        report = run_load(
            engine,
            catalog,
            limit=limit,
            object_type=args.object_type or settings.object_type,
            name_prefix=settings.name_prefix,
            max_magnitude=args.max_magnitude,
            capture_history=settings.capture_history and not args.no_history,
        )
    except (CatalogFetchError, SchemaMismatchError, KeyError) as e:
        logger.error("Load aborted: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print(f"Loaded {report.total} rows: {report.summary()}")
    for error in report.errors:
        print(f"  skipped {error}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
