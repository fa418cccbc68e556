"""Database engine helpers."""

import logging
from typing import Any

from sqlalchemy import create_engine, delete, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from celestial_catalog.exceptions import ObjectInUseError
from celestial_catalog.schema import (
    OBJECT_DEPENDENT_TABLES,
    celestial_object,
    create_schema,
)

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores FOREIGN KEY clauses unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine with foreign keys enforced on every backend.

    Args:
        url: SQLAlchemy database URL, e.g. ``postgresql+psycopg://user@host/db``
        **kwargs: Passed through to ``sqlalchemy.create_engine``

    Returns:
        Configured Engine
    """
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.debug("Created %s engine for %s", engine.dialect.name, engine.url)
    return engine


def init_database(url: str, **kwargs: Any) -> Engine:
    """Create an engine and make sure every table exists."""
    engine = create_db_engine(url, **kwargs)
    create_schema(engine)
    return engine


def delete_object(engine: Engine, object_name: str) -> bool:
    """Delete a celestial object that nothing else references.

    Deletion never cascades: criteria values, star data and history rows
    must be removed first, otherwise the foreign keys reject the delete.

    Args:
        engine: Database engine
        object_name: Unique object name, e.g. "Gaia-12345"

    Returns:
        True if the object was deleted, False if it did not exist

    Raises:
        ObjectInUseError: If dependent rows still reference the object
    """
    try:
        with engine.begin() as conn:
            object_id = conn.execute(
                select(celestial_object.c.object_id).where(
                    celestial_object.c.object_name == object_name
                )
            ).scalar_one_or_none()
            if object_id is None:
                return False

            dependents = [
                table.name
                for table in OBJECT_DEPENDENT_TABLES
                if conn.execute(
                    select(func.count())
                    .select_from(table)
                    .where(table.c.object_id == object_id)
                ).scalar()
            ]
            if dependents:
                raise ObjectInUseError(
                    f"{object_name} is still referenced by {', '.join(dependents)}"
                )

            conn.execute(
                delete(celestial_object).where(
                    celestial_object.c.object_id == object_id
                )
            )
    except IntegrityError as e:
        raise ObjectInUseError(
            f"{object_name} is still referenced by dependent rows"
        ) from e

    logger.info("Deleted celestial object %s", object_name)
    return True
