"""Tests for the relational schema and its constraints."""

import pytest
from sqlalchemy import func, insert, inspect, select
from sqlalchemy.exc import IntegrityError

from celestial_catalog.database import delete_object
from celestial_catalog.exceptions import ObjectInUseError
from celestial_catalog.schema import (
    celestial_object,
    celestial_object_criteria_numeric,
    constellations,
    criteria,
    history,
    metadata,
    object_types,
    render_ddl,
)

EXPECTED_TABLES = {
    "object_types",
    "celestial_object",
    "criteria",
    "criteria_category",
    "celestial_object_criteria_numeric",
    "celestial_object_criteria_category",
    "history",
    "stars_spectral_type_temperature",
    "constellations",
    "stars_data",
}


def _add_type(conn, name="Star"):
    return conn.execute(insert(object_types).values(type_name=name)).inserted_primary_key[0]


def _add_object(conn, type_id, name, ra, dec):
    return conn.execute(
        insert(celestial_object).values(
            object_type_id=type_id, object_name=name, right_ascension=ra, declination=dec
        )
    ).inserted_primary_key[0]


class TestSchemaDefinition:
    """Tests for table definitions and DDL rendering."""

    def test_all_tables_created(self, engine):
        """Test that create_schema creates every table."""
        assert set(inspect(engine).get_table_names()) == EXPECTED_TABLES
        assert set(metadata.tables) == EXPECTED_TABLES

    def test_junction_tables_use_composite_keys(self):
        """Test that junction tables are keyed by both foreign ids."""
        numeric_pk = [c.name for c in celestial_object_criteria_numeric.primary_key]
        assert numeric_pk == ["object_id", "criteria_id"]

    def test_every_table_is_commented(self):
        """Test that tables carry descriptive comments."""
        for table in metadata.tables.values():
            assert table.comment, f"{table.name} should have a comment"

    def test_postgresql_ddl(self):
        """Test the PostgreSQL DDL script."""
        ddl = render_ddl("postgresql")

        assert "CREATE TABLE celestial_object" in ddl
        assert "SERIAL" in ddl, "Surrogate keys should be serial"
        assert "NUMERIC(20, 10)" in ddl
        assert "CONSTRAINT unique_position UNIQUE (right_ascension, declination)" in ddl
        assert "COMMENT ON TABLE history IS 'Tracks changes to celestial objects.'" in ddl
        assert ddl.index("CREATE TABLE object_types") < ddl.index(
            "CREATE TABLE celestial_object"
        ), "Referenced tables should be created first"

    def test_sqlite_ddl_has_no_comments(self):
        """Test that SQLite DDL omits COMMENT statements."""
        ddl = render_ddl("sqlite")

        assert "CREATE TABLE stars_data" in ddl
        assert "COMMENT ON" not in ddl

    def test_unsupported_dialect(self):
        """Test that unknown dialects are rejected."""
        with pytest.raises(ValueError, match="Unsupported dialect"):
            render_ddl("oracle")


class TestConstraints:
    """Tests for uniqueness and referential integrity."""

    def test_type_name_unique(self, engine):
        with engine.begin() as conn:
            _add_type(conn, "Galaxy")

        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                _add_type(conn, "Galaxy")

    def test_object_name_unique(self, engine):
        with engine.begin() as conn:
            type_id = _add_type(conn)
            _add_object(conn, type_id, "Gaia-1", 1.0, 1.0)

        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                _add_object(conn, type_id, "Gaia-1", 2.0, 2.0)

    def test_position_unique(self, engine):
        """Test that two objects cannot share the same coordinates."""
        with engine.begin() as conn:
            type_id = _add_type(conn)
            _add_object(conn, type_id, "Gaia-1", 10.5, -5.25)

        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                _add_object(conn, type_id, "Gaia-2", 10.5, -5.25)

        with engine.connect() as conn:
            names = conn.execute(select(celestial_object.c.object_name)).scalars().all()
        assert names == ["Gaia-1"], "First object should remain intact"

    def test_same_declination_different_ascension_allowed(self, engine):
        with engine.begin() as conn:
            type_id = _add_type(conn)
            _add_object(conn, type_id, "Gaia-1", 10.5, -5.25)
            _add_object(conn, type_id, "Gaia-2", 10.6, -5.25)

    def test_constellation_name_unique(self, engine):
        with engine.begin() as conn:
            conn.execute(insert(constellations).values(constellation_name="Orion"))

        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                conn.execute(insert(constellations).values(constellation_name="Orion"))

    def test_object_requires_existing_type(self, engine):
        """Test that foreign keys are enforced."""
        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                _add_object(conn, 999, "Gaia-1", 1.0, 1.0)

    def test_criterion_type_is_optional(self, engine):
        """Test that a criterion may apply to every object type."""
        with engine.begin() as conn:
            conn.execute(
                insert(criteria).values(criteria_name="Magnitude", criteria_measure="mag")
            )
            type_id = conn.execute(select(criteria.c.type_id)).scalar_one()

        assert type_id is None

    def test_history_timestamp_defaults_to_now(self, engine):
        with engine.begin() as conn:
            type_id = _add_type(conn)
            object_id = _add_object(conn, type_id, "Gaia-1", 1.0, 1.0)
            conn.execute(
                insert(history).values(
                    object_id=object_id, old_data={"a": 1}, new_data={"a": 2}
                )
            )
            row = conn.execute(select(history)).one()

        assert row.date_time is not None
        assert row.old_data == {"a": 1}
        assert row.new_data == {"a": 2}


class TestDeleteObject:
    """Tests for guarded object deletion."""

    def test_delete_unreferenced_object(self, engine):
        with engine.begin() as conn:
            type_id = _add_type(conn)
            _add_object(conn, type_id, "Gaia-1", 1.0, 1.0)

        assert delete_object(engine, "Gaia-1") is True

        with engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(celestial_object)).scalar()
        assert count == 0

    def test_delete_missing_object(self, engine):
        assert delete_object(engine, "Gaia-404") is False

    def test_delete_referenced_object_rejected(self, engine):
        """Test that deletion does not cascade to dependent rows."""
        with engine.begin() as conn:
            type_id = _add_type(conn)
            object_id = _add_object(conn, type_id, "Gaia-1", 1.0, 1.0)
            criteria_id = conn.execute(
                insert(criteria).values(criteria_name="Magnitude")
            ).inserted_primary_key[0]
            conn.execute(
                insert(celestial_object_criteria_numeric).values(
                    object_id=object_id, criteria_id=criteria_id, value=5.0
                )
            )

        with pytest.raises(ObjectInUseError, match="celestial_object_criteria_numeric"):
            delete_object(engine, "Gaia-1")

        with engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(celestial_object)).scalar()
        assert count == 1, "Object should survive a rejected delete"
