"""Example read queries over the celestial object schema.

These show how the normalized tables are consumed: ranking objects by a
criterion, listing the criteria that apply to a type, resolving a spectral
class to its temperature range and reading an object's change history.
"""

from typing import Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy import or_, select
from sqlalchemy.engine import Connection

from celestial_catalog.schema import (
    celestial_object,
    celestial_object_criteria_numeric,
    constellations,
    criteria,
    criteria_category,
    history,
    object_types,
    stars_data,
    stars_spectral_type_temperature,
)
from celestial_catalog.taxonomy import SPECTRAL_CLASS_CRITERION


def _to_float_columns(frame: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    for column in columns:
        # NUMERIC columns come back as Decimal objects
        frame[column] = frame[column].astype(float)
    return frame


def top_objects(
    conn: Connection,
    criterion_name: str = "Magnitude",
    limit: int = 10,
    ascending: bool = True,
    object_type: Optional[str] = None,
) -> pd.DataFrame:
    """Rank objects by the value of a numeric criterion.

    Args:
        conn: Open database connection
        criterion_name: Criterion to rank by, e.g. "Magnitude"
        limit: Number of objects to return
        ascending: Smallest values first (brightest, for magnitudes)
        object_type: Restrict to one object type

    Returns:
        DataFrame with object_name, type_name, right_ascension, declination
        and value columns

    Example:
        >>> with engine.connect() as conn:
        ...     brightest = top_objects(conn, "Magnitude", limit=5)
    """
    value = celestial_object_criteria_numeric.c.value
    stmt = (
        select(
            celestial_object.c.object_name,
            object_types.c.type_name,
            celestial_object.c.right_ascension,
            celestial_object.c.declination,
            value,
        )
        .join(
            celestial_object_criteria_numeric,
            celestial_object_criteria_numeric.c.object_id
            == celestial_object.c.object_id,
        )
        .join(
            criteria,
            criteria.c.criteria_id == celestial_object_criteria_numeric.c.criteria_id,
        )
        .join(object_types, object_types.c.type_id == celestial_object.c.object_type_id)
        .where(criteria.c.criteria_name == criterion_name)
        .order_by(value.asc() if ascending else value.desc(), celestial_object.c.object_name)
        .limit(limit)
    )
    if object_type is not None:
        stmt = stmt.where(object_types.c.type_name == object_type)

    frame = pd.read_sql(stmt, conn)
    return _to_float_columns(frame, ["right_ascension", "declination", "value"])


def criteria_by_type(
    conn: Connection, type_name: str, include_universal: bool = True
) -> pd.DataFrame:
    """List the criteria that apply to an object type.

    Universal criteria (no type) are included unless ``include_universal``
    is False; their ``type_name`` is None.
    """
    condition = object_types.c.type_name == type_name
    if include_universal:
        condition = or_(condition, criteria.c.type_id.is_(None))

    stmt = (
        select(
            criteria.c.criteria_id,
            criteria.c.criteria_name,
            criteria.c.criteria_measure,
            object_types.c.type_name,
        )
        .select_from(criteria)
        .outerjoin(object_types, object_types.c.type_id == criteria.c.type_id)
        .where(condition)
        .order_by(criteria.c.criteria_id)
    )
    return pd.read_sql(stmt, conn)


def spectral_temperature_range(
    conn: Connection, spectral_class: str
) -> Optional[Tuple[int, int]]:
    """Return the (from, to) temperature range in Kelvin of a spectral class."""
    row = conn.execute(
        select(
            stars_spectral_type_temperature.c.temperature_from,
            stars_spectral_type_temperature.c.temperature_to,
        )
        .join(
            criteria_category,
            criteria_category.c.category_id
            == stars_spectral_type_temperature.c.category_id,
        )
        .join(criteria, criteria.c.criteria_id == criteria_category.c.criteria_id)
        .where(
            criteria.c.criteria_name == SPECTRAL_CLASS_CRITERION,
            criteria_category.c.category_name == spectral_class,
        )
    ).first()

    if row is None:
        return None
    return (row.temperature_from, row.temperature_to)


def object_criteria(conn: Connection, object_name: str) -> Dict[str, float]:
    """Return an object's numeric criteria keyed by criterion name."""
    rows = conn.execute(
        select(criteria.c.criteria_name, celestial_object_criteria_numeric.c.value)
        .join(
            criteria,
            criteria.c.criteria_id == celestial_object_criteria_numeric.c.criteria_id,
        )
        .join(
            celestial_object,
            celestial_object.c.object_id == celestial_object_criteria_numeric.c.object_id,
        )
        .where(celestial_object.c.object_name == object_name)
    ).all()
    return {name: float(value) for name, value in rows if value is not None}


def stars_in_constellation(conn: Connection, constellation_name: str) -> pd.DataFrame:
    """List stars assigned to a constellation, with their designations."""
    stmt = (
        select(
            celestial_object.c.object_name,
            stars_data.c.designation,
            celestial_object.c.right_ascension,
            celestial_object.c.declination,
        )
        .join(stars_data, stars_data.c.object_id == celestial_object.c.object_id)
        .join(
            constellations,
            constellations.c.constellation_id == stars_data.c.constellation_id,
        )
        .where(constellations.c.constellation_name == constellation_name)
        .order_by(celestial_object.c.object_name)
    )
    frame = pd.read_sql(stmt, conn)
    return _to_float_columns(frame, ["right_ascension", "declination"])


def object_history(conn: Connection, object_name: str) -> List[dict]:
    """Return an object's history entries, oldest first."""
    rows = conn.execute(
        select(history.c.date_time, history.c.old_data, history.c.new_data)
        .join(celestial_object, celestial_object.c.object_id == history.c.object_id)
        .where(celestial_object.c.object_name == object_name)
        .order_by(history.c.history_id)
    ).all()
    return [dict(row._mapping) for row in rows]
