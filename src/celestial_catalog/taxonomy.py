"""Reference taxonomy seeded before any object data is loaded.

The taxonomy covers object types, criteria (with units and optional type
scope), the allowed categories of categorical criteria, the temperature
range of each stellar spectral class and the 88 IAU constellations.

Seeding is an idempotent upsert keyed by natural names, so it can run at
the start of every load.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from sqlalchemy import Table, insert, select, update
from sqlalchemy.engine import Connection, Engine

from celestial_catalog.constellations import CONSTELLATION_NAMES
from celestial_catalog.schema import (
    constellations,
    criteria,
    criteria_category,
    object_types,
    stars_spectral_type_temperature,
)

logger = logging.getLogger(__name__)

OBJECT_TYPES = (
    "Star",
    "Galaxy",
    "Quasar",
    "Nebula",
    "Star Cluster",
    "Exoplanet",
)


@dataclass(frozen=True)
class CriterionSpec:
    """A criterion definition: name, unit and optional object type scope."""

    name: str
    measure: Optional[str] = None
    type_name: Optional[str] = None


CRITERIA = (
    CriterionSpec("Magnitude", "mag"),
    CriterionSpec("BP-RP Colour", "mag"),
    CriterionSpec("Parallax", "mas", "Star"),
    CriterionSpec("Proper Motion RA", "mas/yr", "Star"),
    CriterionSpec("Proper Motion Dec", "mas/yr", "Star"),
    CriterionSpec("Radial Velocity", "km/s", "Star"),
    CriterionSpec("Effective Temperature", "K", "Star"),
    CriterionSpec("Spectral Class", None, "Star"),
    CriterionSpec("Redshift", None, "Galaxy"),
    CriterionSpec("Morphology", None, "Galaxy"),
)

SPECTRAL_CLASS_CRITERION = "Spectral Class"

# Surface temperature range in Kelvin, hottest class first
SPECTRAL_TEMPERATURES = {
    "O": (30000, 50000),
    "B": (10000, 30000),
    "A": (7500, 10000),
    "F": (6000, 7500),
    "G": (5300, 6000),
    "K": (3900, 5300),
    "M": (2300, 3900),
}

CATEGORIES = {
    SPECTRAL_CLASS_CRITERION: tuple(SPECTRAL_TEMPERATURES),
    "Morphology": ("Spiral", "Barred Spiral", "Elliptical", "Lenticular", "Irregular"),
}


@dataclass
class Taxonomy:
    """Database ids of the seeded reference rows, keyed by natural name."""

    type_ids: Dict[str, int] = field(default_factory=dict)
    criteria_ids: Dict[str, int] = field(default_factory=dict)
    criteria_types: Dict[str, Optional[str]] = field(default_factory=dict)
    category_ids: Dict[Tuple[str, str], int] = field(default_factory=dict)
    constellation_ids: Dict[str, int] = field(default_factory=dict)

    def type_id(self, type_name: str) -> int:
        try:
            return self.type_ids[type_name]
        except KeyError:
            raise KeyError(
                f"Unknown object type {type_name!r}; "
                f"known types: {sorted(self.type_ids)}"
            ) from None

    def criterion_id(self, criterion_name: str) -> int:
        try:
            return self.criteria_ids[criterion_name]
        except KeyError:
            raise KeyError(f"Unknown criterion {criterion_name!r}") from None

    def applies_to(self, criterion_name: str, type_name: str) -> bool:
        """Return True if the criterion is universal or scoped to ``type_name``."""
        self.criterion_id(criterion_name)
        scope = self.criteria_types.get(criterion_name)
        return scope is None or scope == type_name

    def category_id(self, criterion_name: str, category_name: str) -> int:
        try:
            return self.category_ids[(criterion_name, category_name)]
        except KeyError:
            raise KeyError(
                f"Unknown category {category_name!r} for {criterion_name!r}"
            ) from None


def upsert_row(
    conn: Connection,
    table: Table,
    key: Dict[str, object],
    values: Optional[Dict[str, object]] = None,
) -> int:
    """Insert a row identified by ``key`` unless it exists; return its id.

    Non-key ``values`` of an existing row are updated when they differ.
    """
    pk = list(table.primary_key.columns)[0]
    conditions = [
        table.c[name].is_(None) if value is None else table.c[name] == value
        for name, value in key.items()
    ]
    row = conn.execute(select(table).where(*conditions)).first()

    if row is None:
        result = conn.execute(insert(table).values(**key, **(values or {})))
        return result.inserted_primary_key[0]

    current = row._mapping
    changed = {
        name: value for name, value in (values or {}).items() if current[name] != value
    }
    if changed:
        conn.execute(update(table).where(pk == current[pk.name]).values(**changed))
        logger.info("Updated %s row %s: %s", table.name, current[pk.name], changed)
    return current[pk.name]


def seed_taxonomy(engine: Engine) -> Taxonomy:
    """Upsert all reference rows in one transaction.

    Re-running is safe: rows are matched by type name, criterion name and
    scope, category name within its criterion, and constellation name.

    Args:
        engine: Database engine with the schema already created

    Returns:
        Taxonomy with the ids of every reference row
    """
    taxonomy = Taxonomy()

    with engine.begin() as conn:
        for type_name in OBJECT_TYPES:
            taxonomy.type_ids[type_name] = upsert_row(
                conn, object_types, {"type_name": type_name}
            )

        for criterion in CRITERIA:
            type_id = taxonomy.type_id(criterion.type_name) if criterion.type_name else None
            taxonomy.criteria_ids[criterion.name] = upsert_row(
                conn,
                criteria,
                {"criteria_name": criterion.name, "type_id": type_id},
                {"criteria_measure": criterion.measure},
            )
            taxonomy.criteria_types[criterion.name] = criterion.type_name

        for criterion_name, category_names in CATEGORIES.items():
            criteria_id = taxonomy.criterion_id(criterion_name)
            for category_name in category_names:
                taxonomy.category_ids[(criterion_name, category_name)] = upsert_row(
                    conn,
                    criteria_category,
                    {"criteria_id": criteria_id, "category_name": category_name},
                )

        for spectral_type, (temp_from, temp_to) in SPECTRAL_TEMPERATURES.items():
            upsert_row(
                conn,
                stars_spectral_type_temperature,
                {
                    "category_id": taxonomy.category_id(
                        SPECTRAL_CLASS_CRITERION, spectral_type
                    )
                },
                {
                    "spectral_type": spectral_type,
                    "temperature_from": temp_from,
                    "temperature_to": temp_to,
                },
            )

        for name in CONSTELLATION_NAMES.values():
            taxonomy.constellation_ids[name] = upsert_row(
                conn, constellations, {"constellation_name": name}
            )

    logger.info(
        "Seeded taxonomy: %d types, %d criteria, %d categories, %d constellations",
        len(taxonomy.type_ids),
        len(taxonomy.criteria_ids),
        len(taxonomy.category_ids),
        len(taxonomy.constellation_ids),
    )
    return taxonomy


def spectral_class_for_temperature(temperature: float) -> Optional[str]:
    """Map an effective temperature in Kelvin to a spectral class letter.

    Ranges are half-open (``from <= T < to``); anything hotter than the O
    range is still class O. Temperatures below class M return None.

    Example:
        >>> spectral_class_for_temperature(5772)  # the Sun
        'G'
    """
    for spectral_type, (temp_from, temp_to) in SPECTRAL_TEMPERATURES.items():
        if temp_from <= temperature < temp_to:
            return spectral_type
    if temperature >= SPECTRAL_TEMPERATURES["O"][1]:
        return "O"
    return None
