"""Shared fixtures: in-memory database and an offline Gaia service."""

from typing import List, Optional

import numpy as np
import pytest
from astropy.table import Table
from sqlalchemy.pool import StaticPool

from celestial_catalog.catalog import GaiaCatalog
from celestial_catalog.database import create_db_engine
from celestial_catalog.schema import create_schema
from celestial_catalog.taxonomy import seed_taxonomy

BETELGEUSE = {
    "SOURCE_ID": 3334573806131680000,
    "designation": "Gaia DR3 3334573806131680000",
    "ra": 88.7929,
    "dec": 7.4071,
    "phot_g_mean_mag": 0.42,
    "bp_rp": 2.9,
    "parallax": 6.55,
    "pmra": 27.54,
    "pmdec": 11.3,
    "radial_velocity": 21.9,
    "teff_gspphot": 3600.0,
}


def gaia_table(rows: List[dict]) -> Table:
    """Build an astropy Table shaped like a Gaia archive result."""
    names = list(rows[0])
    return Table({name: [row.get(name, np.nan) for row in rows] for name in names})


def gaia_row(source_id: int, ra: float, dec: float, **attributes) -> dict:
    row = {
        "SOURCE_ID": source_id,
        "designation": f"Gaia DR3 {source_id}",
        "ra": ra,
        "dec": dec,
        "phot_g_mean_mag": np.nan,
        "bp_rp": np.nan,
        "parallax": np.nan,
        "pmra": np.nan,
        "pmdec": np.nan,
        "radial_velocity": np.nan,
        "teff_gspphot": np.nan,
    }
    row.update(attributes)
    return row


class FakeJob:
    def __init__(self, table: Table):
        self.table = table

    def get_results(self) -> Table:
        return self.table


class FakeGaiaService:
    """Stands in for astroquery.gaia.Gaia."""

    def __init__(self, table: Optional[Table] = None, error: Optional[Exception] = None):
        self.table = table
        self.error = error
        self.queries: List[str] = []

    def launch_job(self, query: str) -> FakeJob:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return FakeJob(self.table)


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_db_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def taxonomy(engine):
    """Seeded taxonomy for the in-memory database."""
    return seed_taxonomy(engine)


@pytest.fixture
def make_catalog():
    """Factory for GaiaCatalog instances backed by a fake service."""

    def _make(rows: Optional[List[dict]] = None, error: Optional[Exception] = None):
        table = gaia_table(rows) if rows else None
        return GaiaCatalog(service=FakeGaiaService(table=table, error=error))

    return _make
