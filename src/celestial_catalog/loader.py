"""Transform catalog rows and load them into the celestial object tables.

Each fetched row becomes one ``celestial_object`` plus its numeric
criteria, spectral class link and, for stars, a ``stars_data`` row. Every
object is written in its own transaction: a row that violates a uniqueness
or foreign key constraint is reported and skipped while the rest of the
batch continues.

Reloading the same source rows is idempotent. When an existing object's
attributes differ from the incoming row, a history entry with the old and
new snapshots is written before the update is applied.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from celestial_catalog.catalog import (
    DEFAULT_ATTRIBUTE_COLUMNS,
    REQUIRED_COLUMNS,
    GaiaCatalog,
    validate_columns,
)
from celestial_catalog.constellations import constellation_name
from celestial_catalog.exceptions import SchemaMismatchError
from celestial_catalog.schema import (
    COORDINATE_PRECISION,
    COORDINATE_SCALE,
    celestial_object,
    celestial_object_criteria_category,
    celestial_object_criteria_numeric,
    constellations,
    criteria,
    criteria_category,
    history,
    stars_data,
)
from celestial_catalog.taxonomy import (
    SPECTRAL_CLASS_CRITERION,
    Taxonomy,
    seed_taxonomy,
    spectral_class_for_temperature,
    upsert_row,
)

logger = logging.getLogger(__name__)

# Gaia column -> criterion name
ATTRIBUTE_CRITERIA = {
    "phot_g_mean_mag": "Magnitude",
    "bp_rp": "BP-RP Colour",
    "parallax": "Parallax",
    "pmra": "Proper Motion RA",
    "pmdec": "Proper Motion Dec",
    "radial_velocity": "Radial Velocity",
    "teff_gspphot": "Effective Temperature",
}

TEMPERATURE_CRITERION = "Effective Temperature"
STAR_TYPE = "Star"

_QUANTUM = Decimal(1).scaleb(-COORDINATE_SCALE)
_LIMIT = Decimal(10) ** (COORDINATE_PRECISION - COORDINATE_SCALE)


def to_decimal(value) -> Decimal:
    """Convert a number to a Decimal rounded to the schema's scale.

    Raises:
        ValueError: If the value is not a finite number or does not fit the
            column's precision
    """
    if isinstance(value, (bool, np.bool_)) or _is_missing(value):
        raise ValueError(f"Expected a number, got {value!r}")
    try:
        number = Decimal(repr(float(value)))
    except (TypeError, ValueError, InvalidOperation):
        raise ValueError(f"Expected a number, got {value!r}") from None
    if not number.is_finite():
        raise ValueError(f"Expected a finite number, got {value!r}")
    if abs(number) >= _LIMIT:
        raise ValueError(
            f"{value!r} is out of range, must be below {_LIMIT} in magnitude"
        )
    return number.quantize(_QUANTUM)


def _snapshot_number(value) -> Optional[float]:
    # JSON documents hold floats; round to the stored scale so reads compare equal
    if value is None:
        return None
    return round(float(value), COORDINATE_SCALE)


def _is_missing(value) -> bool:
    if value is None or value is pd.NA or value is np.ma.masked:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _source_id(value) -> int:
    # Gaia source ids exceed float precision, so never round-trip through float
    if isinstance(value, (bool, np.bool_)) or _is_missing(value):
        raise ValueError(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(value)


@dataclass
class ObjectRecord:
    """A celestial object ready to be written to the database."""

    object_name: str
    object_type: str
    object_type_id: int
    right_ascension: Decimal
    declination: Decimal
    criteria: Dict[str, Decimal] = field(default_factory=dict)
    categories: Dict[str, str] = field(default_factory=dict)
    designation: Optional[str] = None

    def snapshot(self) -> dict:
        """Return the object's state as a JSON-serializable document."""
        return {
            "object_name": self.object_name,
            "object_type_id": self.object_type_id,
            "right_ascension": _snapshot_number(self.right_ascension),
            "declination": _snapshot_number(self.declination),
            "criteria": {
                name: _snapshot_number(value)
                for name, value in sorted(self.criteria.items())
            },
            "categories": dict(sorted(self.categories.items())),
            # Designations are only stored for stars
            "designation": (
                self.designation if self.object_type == STAR_TYPE else None
            ),
        }


@dataclass
class LoadReport:
    """Outcome of a load run, listing object names per outcome."""

    inserted: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.inserted)
            + len(self.updated)
            + len(self.unchanged)
            + len(self.skipped)
        )

    def summary(self) -> str:
        return (
            f"{len(self.inserted)} inserted, {len(self.updated)} updated, "
            f"{len(self.unchanged)} unchanged, {len(self.skipped)} skipped"
        )


def transform_rows(
    frame: pd.DataFrame,
    taxonomy: Taxonomy,
    object_type: str = STAR_TYPE,
    name_prefix: str = "Gaia-",
    attribute_criteria: Optional[Dict[str, str]] = None,
) -> List[ObjectRecord]:
    """Map catalog rows to object records.

    ``object_name`` is the prefix followed by the source identifier,
    coordinates are copied, and every mapped attribute column with a value
    becomes a numeric criterion, unless that criterion is scoped to a
    different object type. Stars carrying an effective temperature also
    get a spectral class category.

    Args:
        frame: Catalog rows; column names are matched case-insensitively
        taxonomy: Seeded taxonomy used to resolve the object type id
        object_type: Type name assigned to every row
        name_prefix: Prefix of synthesized object names
        attribute_criteria: Column -> criterion mapping, defaults to
            ATTRIBUTE_CRITERIA

    Returns:
        One ObjectRecord per row, in input order

    Raises:
        SchemaMismatchError: If required columns are missing or a row has a
            non-numeric identifier, coordinate or attribute
        KeyError: If the object type is not part of the taxonomy

    Example:
        >>> frame = pd.DataFrame({"SOURCE_ID": [12345], "ra": [10.5], "dec": [-5.25]})
        >>> transform_rows(frame, taxonomy)[0].object_name
        'Gaia-12345'
    """
    if attribute_criteria is None:
        attribute_criteria = ATTRIBUTE_CRITERIA

    frame = frame.rename(columns=lambda column: str(column).lower())
    validate_columns(frame, REQUIRED_COLUMNS)
    type_id = taxonomy.type_id(object_type)

    # Criteria scoped to another object type are not recorded for this one
    applicable = {
        column: criterion_name
        for column, criterion_name in attribute_criteria.items()
        if taxonomy.applies_to(criterion_name, object_type)
    }
    ignored = sorted(set(attribute_criteria) - set(applicable))
    if ignored:
        logger.debug("Ignoring columns not applicable to %s: %s", object_type, ignored)
    assign_spectral_class = taxonomy.applies_to(SPECTRAL_CLASS_CRITERION, object_type)

    records = []
    for position, row in enumerate(frame.to_dict(orient="records")):
        try:
            source_id = _source_id(row["source_id"])
        except ValueError:
            raise SchemaMismatchError(
                f"Row {position}: source_id must be an integer, got {row['source_id']!r}"
            ) from None

        try:
            ra = to_decimal(row["ra"])
            dec = to_decimal(row["dec"])
        except ValueError as e:
            raise SchemaMismatchError(f"Row {position}: invalid coordinate: {e}") from None

        values = {}
        for column, criterion_name in applicable.items():
            value = row.get(column)
            if _is_missing(value):
                continue
            try:
                values[criterion_name] = to_decimal(value)
            except ValueError as e:
                raise SchemaMismatchError(
                    f"Row {position}: column {column!r}: {e}"
                ) from None

        categories = {}
        if assign_spectral_class and TEMPERATURE_CRITERION in values:
            spectral_class = spectral_class_for_temperature(
                float(values[TEMPERATURE_CRITERION])
            )
            if spectral_class is not None:
                categories[SPECTRAL_CLASS_CRITERION] = spectral_class

        designation = row.get("designation")
        if _is_missing(designation):
            designation = None
        elif isinstance(designation, bytes):
            designation = designation.decode("utf-8")

        records.append(
            ObjectRecord(
                object_name=f"{name_prefix}{source_id}",
                object_type=object_type,
                object_type_id=type_id,
                right_ascension=ra,
                declination=dec,
                criteria=values,
                categories=categories,
                designation=str(designation) if designation is not None else None,
            )
        )

    return records


class CatalogLoader:
    """Writes object records and keeps history of changed objects."""

    def __init__(
        self,
        engine: Engine,
        taxonomy: Taxonomy,
        capture_history: bool = True,
    ):
        """Initialize loader.

        Args:
            engine: Database engine with schema and taxonomy in place
            taxonomy: Ids of the seeded reference rows
            capture_history: Write a history row before updating an object
        """
        self.engine = engine
        self.taxonomy = taxonomy
        self.capture_history = capture_history
        self._new_constellations: Dict[str, int] = {}

    def load(self, records: Sequence[ObjectRecord]) -> LoadReport:
        """Insert new objects and update changed ones.

        Args:
            records: Output of transform_rows()

        Returns:
            LoadReport naming each object under its outcome
        """
        report = LoadReport()

        for record in records:
            try:
                outcome = self._load_record(record)
            except IntegrityError as e:
                message = f"{record.object_name}: {e.orig}"
                logger.warning("Skipping %s", message)
                report.skipped.append(record.object_name)
                report.errors.append(message)
                continue
            getattr(report, outcome).append(record.object_name)

        logger.info("Load finished: %s", report.summary())
        return report

    def _load_record(self, record: ObjectRecord) -> str:
        # Constellation ids created in this transaction, published on commit
        self._new_constellations = {}
        with self.engine.begin() as conn:
            outcome = self._apply_record(conn, record)
        self.taxonomy.constellation_ids.update(self._new_constellations)
        return outcome

    def _apply_record(self, conn: Connection, record: ObjectRecord) -> str:
        object_id = conn.execute(
            select(celestial_object.c.object_id).where(
                celestial_object.c.object_name == record.object_name
            )
        ).scalar_one_or_none()

        if object_id is None:
            self._insert(conn, record)
            return "inserted"

        old_data = read_snapshot(conn, object_id)
        new_data = record.snapshot()
        if old_data == new_data:
            return "unchanged"

        if self.capture_history:
            conn.execute(
                insert(history).values(
                    object_id=object_id, old_data=old_data, new_data=new_data
                )
            )
        self._update(conn, object_id, record)
        logger.info("Updated %s", record.object_name)
        return "updated"

    def _insert(self, conn: Connection, record: ObjectRecord) -> int:
        result = conn.execute(
            insert(celestial_object).values(
                object_type_id=record.object_type_id,
                object_name=record.object_name,
                right_ascension=record.right_ascension,
                declination=record.declination,
            )
        )
        object_id = result.inserted_primary_key[0]
        self._write_children(conn, object_id, record)
        logger.debug("Inserted %s as object %s", record.object_name, object_id)
        return object_id

    def _update(self, conn: Connection, object_id: int, record: ObjectRecord) -> None:
        conn.execute(
            update(celestial_object)
            .where(celestial_object.c.object_id == object_id)
            .values(
                object_type_id=record.object_type_id,
                right_ascension=record.right_ascension,
                declination=record.declination,
            )
        )
        for table in (
            celestial_object_criteria_numeric,
            celestial_object_criteria_category,
            stars_data,
        ):
            conn.execute(delete(table).where(table.c.object_id == object_id))
        self._write_children(conn, object_id, record)

    def _write_children(
        self, conn: Connection, object_id: int, record: ObjectRecord
    ) -> None:
        numeric_rows = [
            {
                "object_id": object_id,
                "criteria_id": self.taxonomy.criterion_id(name),
                "value": value,
            }
            for name, value in record.criteria.items()
        ]
        if numeric_rows:
            conn.execute(insert(celestial_object_criteria_numeric), numeric_rows)

        for criterion_name, category_name in record.categories.items():
            conn.execute(
                insert(celestial_object_criteria_category).values(
                    object_id=object_id,
                    category_id=self.taxonomy.category_id(criterion_name, category_name),
                )
            )

        if record.object_type == STAR_TYPE:
            self._write_star_data(conn, object_id, record)

    def _write_star_data(
        self, conn: Connection, object_id: int, record: ObjectRecord
    ) -> None:
        name = constellation_name(
            float(record.right_ascension), float(record.declination)
        )
        if name is None:
            logger.warning("No constellation found for %s", record.object_name)
            return

        constellation_id = self.taxonomy.constellation_ids.get(
            name, self._new_constellations.get(name)
        )
        if constellation_id is None:
            constellation_id = upsert_row(
                conn, constellations, {"constellation_name": name}
            )
            self._new_constellations[name] = constellation_id

        conn.execute(
            insert(stars_data).values(
                object_id=object_id,
                constellation_id=constellation_id,
                designation=record.designation,
            )
        )


def read_snapshot(conn: Connection, object_id: int) -> dict:
    """Read an object's current state in the same shape as ObjectRecord.snapshot()."""
    row = conn.execute(
        select(celestial_object).where(celestial_object.c.object_id == object_id)
    ).one()

    numeric = conn.execute(
        select(criteria.c.criteria_name, celestial_object_criteria_numeric.c.value)
        .join(
            criteria,
            criteria.c.criteria_id == celestial_object_criteria_numeric.c.criteria_id,
        )
        .where(celestial_object_criteria_numeric.c.object_id == object_id)
    ).all()

    categories = conn.execute(
        select(criteria.c.criteria_name, criteria_category.c.category_name)
        .select_from(celestial_object_criteria_category)
        .join(
            criteria_category,
            criteria_category.c.category_id
            == celestial_object_criteria_category.c.category_id,
        )
        .join(criteria, criteria.c.criteria_id == criteria_category.c.criteria_id)
        .where(celestial_object_criteria_category.c.object_id == object_id)
    ).all()

    designation = conn.execute(
        select(stars_data.c.designation).where(stars_data.c.object_id == object_id)
    ).scalar_one_or_none()

    return {
        "object_name": row.object_name,
        "object_type_id": row.object_type_id,
        "right_ascension": _snapshot_number(row.right_ascension),
        "declination": _snapshot_number(row.declination),
        "criteria": {
            name: _snapshot_number(value) for name, value in sorted(numeric)
        },
        "categories": dict(sorted(categories)),
        "designation": designation,
    }


def run_load(
    engine: Engine,
    catalog: GaiaCatalog,
    limit: int,
    object_type: str = STAR_TYPE,
    name_prefix: str = "Gaia-",
    max_magnitude: Optional[float] = None,
    capture_history: bool = True,
    columns: Sequence[str] = DEFAULT_ATTRIBUTE_COLUMNS,
) -> LoadReport:
    """Seed the taxonomy, fetch from the catalog and load the result.

    The taxonomy is committed before the fetch, so a fetch failure leaves it
    intact and writes no objects.

    Raises:
        CatalogFetchError: If the catalog query fails
        SchemaMismatchError: If the result does not match the expected columns
    """
    taxonomy = seed_taxonomy(engine)
    frame = catalog.fetch(limit, columns=columns, max_magnitude=max_magnitude)
    if frame.empty:
        logger.warning("Catalog query returned no rows")
        return LoadReport()

    records = transform_rows(
        frame, taxonomy, object_type=object_type, name_prefix=name_prefix
    )
    loader = CatalogLoader(engine, taxonomy, capture_history=capture_history)
    return loader.load(records)
