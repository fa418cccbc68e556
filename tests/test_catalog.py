"""Tests for Gaia query construction and fetching."""

import pytest
from conftest import BETELGEUSE, FakeGaiaService, gaia_row, gaia_table

from celestial_catalog.catalog import (
    DEFAULT_ATTRIBUTE_COLUMNS,
    GaiaCatalog,
    build_gaia_query,
)
from celestial_catalog.exceptions import CatalogFetchError, SchemaMismatchError


class TestBuildQuery:
    """Tests for ADQL query construction."""

    def test_required_columns_first(self):
        query = build_gaia_query(5, columns=["phot_g_mean_mag"], order_by=None)

        assert query == (
            "SELECT TOP 5 source_id, ra, dec, phot_g_mean_mag FROM gaiadr3.gaia_source"
        )

    def test_magnitude_filter_and_ordering(self):
        query = build_gaia_query(100, max_magnitude=12)

        assert query.startswith("SELECT TOP 100 source_id, ra, dec, designation")
        assert "WHERE phot_g_mean_mag < 12.0" in query
        assert query.endswith("ORDER BY phot_g_mean_mag ASC")

    def test_duplicate_columns_collapsed(self):
        query = build_gaia_query(1, columns=["ra", "SOURCE_ID", "bp_rp"], order_by=None)

        assert query.count("source_id") == 1
        assert query.count("ra,") == 1

    @pytest.mark.parametrize("limit", [0, -10])
    def test_invalid_limit(self, limit):
        with pytest.raises(ValueError, match="limit must be positive"):
            build_gaia_query(limit)

    def test_rejects_unsafe_identifiers(self):
        with pytest.raises(ValueError, match="Invalid ADQL identifier"):
            build_gaia_query(1, columns=["ra; DROP TABLE x"])


class TestGaiaCatalog:
    """Tests for GaiaCatalog.fetch with an offline service."""

    def test_fetch_lowercases_columns(self):
        service = FakeGaiaService(table=gaia_table([BETELGEUSE]))
        catalog = GaiaCatalog(service=service)

        frame = catalog.fetch(10)

        assert "source_id" in frame.columns, "SOURCE_ID should be lower-cased"
        assert len(frame) == 1
        assert service.queries == [build_gaia_query(10)]

    def test_fetch_with_custom_table(self):
        service = FakeGaiaService(table=gaia_table([gaia_row(1, 1.0, 2.0)]))
        catalog = GaiaCatalog(service=service, table="gaiadr2.gaia_source")

        catalog.fetch(1)

        assert "FROM gaiadr2.gaia_source" in service.queries[0]

    def test_service_error_is_wrapped(self):
        catalog = GaiaCatalog(service=FakeGaiaService(error=ConnectionError("timed out")))

        with pytest.raises(CatalogFetchError, match="timed out"):
            catalog.fetch(10)

    def test_missing_column_is_schema_mismatch(self):
        table = gaia_table([{"SOURCE_ID": 1, "ra": 1.0, "dec": 2.0}])
        catalog = GaiaCatalog(service=FakeGaiaService(table=table))

        with pytest.raises(SchemaMismatchError, match="phot_g_mean_mag"):
            catalog.fetch(10, columns=DEFAULT_ATTRIBUTE_COLUMNS)

    def test_run_query_returns_frame(self):
        table = gaia_table([{"SOURCE_ID": 1, "ra": 1.0, "dec": 2.0}])
        catalog = GaiaCatalog(service=FakeGaiaService(table=table))

        frame = catalog.run_query("SELECT TOP 1 source_id, ra, dec FROM gaiadr3.gaia_source")

        assert list(frame.columns) == ["source_id", "ra", "dec"]
