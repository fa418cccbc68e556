"""Relational schema for celestial objects, criteria and change history.

The schema is declared once as SQLAlchemy Core tables and can be rendered
as a DDL script for any supported dialect (PostgreSQL in production,
SQLite for local runs and tests).

Tables:
- object_types: celestial object types (Star, Galaxy, ...)
- celestial_object: objects with their equatorial coordinates
- criteria / criteria_category: measurable and categorical attributes
- celestial_object_criteria_numeric / _category: per-object values
- history: append-only before/after snapshots of changed objects
- stars_spectral_type_temperature, constellations, stars_data: star extensions
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKeyConstraint,
    Integer,
    MetaData,
    Numeric,
    PrimaryKeyConstraint,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.schema import CreateTable, SetColumnComment, SetTableComment

# NUMERIC(20,10): 20 significant digits, 10 of them fractional
COORDINATE_PRECISION = 20
COORDINATE_SCALE = 10

metadata = MetaData()


def _decimal_column(name: str, comment: str) -> Column:
    return Column(
        name,
        Numeric(COORDINATE_PRECISION, COORDINATE_SCALE),
        comment=comment,
    )


object_types = Table(
    "object_types",
    metadata,
    Column(
        "type_id",
        Integer,
        primary_key=True,
        comment="Unique identifier for Object Type.",
    ),
    Column(
        "type_name",
        String(50),
        nullable=False,
        unique=True,
        comment="Name of the Object Type, e.g., Stars, Galaxies, Quasars, etc.",
    ),
    comment="Celestial object types, such as stars, galaxies, quasars, etc.",
)

celestial_object = Table(
    "celestial_object",
    metadata,
    Column(
        "object_id",
        Integer,
        primary_key=True,
        comment="Unique identifier for a celestial object.",
    ),
    Column(
        "object_type_id",
        Integer,
        nullable=False,
        comment="Type of the celestial object.",
    ),
    Column(
        "object_name",
        String(50),
        nullable=False,
        unique=True,
        comment="Name of the celestial object.",
    ),
    _decimal_column("right_ascension", "Right Ascension of the object."),
    _decimal_column("declination", "Declination of the object."),
    ForeignKeyConstraint(
        ["object_type_id"], ["object_types.type_id"], name="fk_object_type"
    ),
    UniqueConstraint("right_ascension", "declination", name="unique_position"),
    comment="Contains data about celestial objects.",
)

criteria = Table(
    "criteria",
    metadata,
    Column(
        "criteria_id",
        Integer,
        primary_key=True,
        comment="Unique identifier for a criterion.",
    ),
    # NULL type_id: the criterion applies to every object type
    Column(
        "type_id",
        Integer,
        nullable=True,
        comment="Object type the criterion is restricted to, if any.",
    ),
    Column(
        "criteria_name",
        String(50),
        nullable=False,
        comment="Name of the criterion, e.g., Magnitude, Stellar Mass.",
    ),
    Column(
        "criteria_measure",
        String(50),
        comment="Unit of measurement for the criterion, e.g., magnitude, solar masses.",
    ),
    ForeignKeyConstraint(["type_id"], ["object_types.type_id"], name="fk_type"),
    comment=(
        "Defines criteria for celestial objects, such as photometric, "
        "spectroscopic, or variability metrics."
    ),
)

criteria_category = Table(
    "criteria_category",
    metadata,
    Column(
        "category_id",
        Integer,
        primary_key=True,
        comment="Unique identifier for a category.",
    ),
    Column(
        "criteria_id",
        Integer,
        nullable=False,
        comment="Criterion associated with the category.",
    ),
    Column(
        "category_name",
        String(50),
        comment="Name of the category, e.g., Main Sequence, Spiral Galaxy.",
    ),
    ForeignKeyConstraint(
        ["criteria_id"], ["criteria.criteria_id"], name="fk_criteria"
    ),
    comment="Defines categorical values for a given criterion.",
)

celestial_object_criteria_numeric = Table(
    "celestial_object_criteria_numeric",
    metadata,
    Column(
        "object_id",
        Integer,
        nullable=False,
        comment="Celestial Object identifier.",
    ),
    Column(
        "criteria_id",
        Integer,
        nullable=False,
        comment="Criterion identifier.",
    ),
    _decimal_column("value", "Value of the numeric criterion."),
    ForeignKeyConstraint(
        ["object_id"], ["celestial_object.object_id"], name="fk_object"
    ),
    ForeignKeyConstraint(
        ["criteria_id"], ["criteria.criteria_id"], name="fk_criteria"
    ),
    PrimaryKeyConstraint("object_id", "criteria_id"),
    comment="Stores numeric criteria values for celestial objects.",
)

celestial_object_criteria_category = Table(
    "celestial_object_criteria_category",
    metadata,
    Column(
        "object_id",
        Integer,
        nullable=False,
        comment="Celestial Object identifier.",
    ),
    Column(
        "category_id",
        Integer,
        nullable=False,
        comment="Category identifier.",
    ),
    ForeignKeyConstraint(
        ["object_id"], ["celestial_object.object_id"], name="fk_object"
    ),
    ForeignKeyConstraint(
        ["category_id"], ["criteria_category.category_id"], name="fk_category"
    ),
    PrimaryKeyConstraint("object_id", "category_id"),
    comment="Stores categorical criteria for celestial objects.",
)

history = Table(
    "history",
    metadata,
    Column(
        "history_id",
        Integer,
        primary_key=True,
        comment="Unique identifier for a history record.",
    ),
    Column(
        "date_time",
        DateTime(timezone=False),
        nullable=False,
        server_default=func.current_timestamp(),
        comment="Timestamp of the change.",
    ),
    Column(
        "object_id",
        Integer,
        nullable=False,
        comment="Celestial Object identifier.",
    ),
    Column("old_data", JSON, comment="Old data in JSON format."),
    Column("new_data", JSON, comment="New data in JSON format."),
    ForeignKeyConstraint(
        ["object_id"], ["celestial_object.object_id"], name="fk_object"
    ),
    comment="Tracks changes to celestial objects.",
)

stars_spectral_type_temperature = Table(
    "stars_spectral_type_temperature",
    metadata,
    Column(
        "category_id",
        Integer,
        nullable=False,
        comment="Category identifier linked to spectral type.",
    ),
    Column(
        "spectral_type",
        String(10),
        nullable=False,
        comment="Spectral type designation.",
    ),
    Column(
        "temperature_from",
        Integer,
        nullable=False,
        comment="Lower bound of temperature range.",
    ),
    Column(
        "temperature_to",
        Integer,
        nullable=False,
        comment="Upper bound of temperature range.",
    ),
    ForeignKeyConstraint(
        ["category_id"], ["criteria_category.category_id"], name="fk_category"
    ),
    PrimaryKeyConstraint("category_id"),
    comment="Defines surface temperature range for each spectral type.",
)

constellations = Table(
    "constellations",
    metadata,
    Column(
        "constellation_id",
        Integer,
        primary_key=True,
        comment="Unique identifier for a constellation.",
    ),
    Column(
        "constellation_name",
        String(100),
        nullable=False,
        unique=True,
        comment="Name of the constellation.",
    ),
    comment="Stores constellation data.",
)

stars_data = Table(
    "stars_data",
    metadata,
    Column(
        "object_id",
        Integer,
        nullable=False,
        comment="Star identifier.",
    ),
    Column(
        "constellation_id",
        Integer,
        nullable=False,
        comment="Identifier for the constellation the star belongs to.",
    ),
    Column(
        "designation",
        String(200),
        comment="IAU catalog designation for the star.",
    ),
    ForeignKeyConstraint(
        ["object_id"], ["celestial_object.object_id"], name="fk_object"
    ),
    ForeignKeyConstraint(
        ["constellation_id"],
        ["constellations.constellation_id"],
        name="fk_constellation",
    ),
    PrimaryKeyConstraint("object_id"),
    comment="Stores additional data specific to stars.",
)

# Tables holding a foreign key to celestial_object.object_id
OBJECT_DEPENDENT_TABLES = (
    celestial_object_criteria_numeric,
    celestial_object_criteria_category,
    history,
    stars_data,
)

_DIALECTS = {
    "postgresql": postgresql.dialect,
    "sqlite": sqlite.dialect,
}


def render_ddl(dialect_name: str = "postgresql") -> str:
    """Render the schema as a DDL script.

    Tables are emitted in dependency order. For dialects that support
    comments, ``COMMENT ON`` statements follow each table.

    Args:
        dialect_name: Target dialect, "postgresql" or "sqlite"

    Returns:
        Semicolon-terminated SQL statements separated by blank lines

    Raises:
        ValueError: If the dialect is not supported
    """
    try:
        dialect = _DIALECTS[dialect_name]()
    except KeyError:
        raise ValueError(
            f"Unsupported dialect {dialect_name!r}; "
            f"expected one of {sorted(_DIALECTS)}"
        ) from None

    statements = []
    for table in metadata.sorted_tables:
        statements.append(str(CreateTable(table).compile(dialect=dialect)).strip())
        if not dialect.supports_comments:
            continue
        if table.comment:
            statements.append(str(SetTableComment(table).compile(dialect=dialect)))
        for column in table.columns:
            if column.comment:
                statements.append(
                    str(SetColumnComment(column).compile(dialect=dialect))
                )

    return "\n\n".join(f"{statement};" for statement in statements) + "\n"


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)

