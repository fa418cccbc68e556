"""Gaia archive access through astroquery.

This module builds ADQL queries against the Gaia source table, runs them
through the Gaia TAP service and returns the result as a DataFrame with
lower-case column names. The TAP client is injectable so the loader can be
exercised without network access.
"""

import logging
import re
from typing import Iterable, Optional, Sequence

import pandas as pd

from celestial_catalog.config import DEFAULT_GAIA_TABLE
from celestial_catalog.exceptions import CatalogFetchError, SchemaMismatchError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("source_id", "ra", "dec")

DEFAULT_ATTRIBUTE_COLUMNS = (
    "designation",
    "phot_g_mean_mag",
    "bp_rp",
    "parallax",
    "pmra",
    "pmdec",
    "radial_velocity",
    "teff_gspphot",
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid ADQL identifier: {name!r}")
    return name


def build_gaia_query(
    limit: int,
    columns: Sequence[str] = DEFAULT_ATTRIBUTE_COLUMNS,
    table: str = DEFAULT_GAIA_TABLE,
    max_magnitude: Optional[float] = None,
    order_by: Optional[str] = "phot_g_mean_mag",
) -> str:
    """Build a bounded ADQL query for Gaia sources.

    The identifier and coordinate columns are always selected first.

    Args:
        limit: Maximum number of rows (ADQL ``TOP``)
        columns: Extra attribute columns to select
        table: Fully qualified Gaia table name
        max_magnitude: Only return sources brighter than this G magnitude
        order_by: Column to sort by, ascending; None for no ordering

    Returns:
        ADQL query string

    Raises:
        ValueError: If the limit is not positive or a name is not a plain
            identifier

    Example:
        >>> build_gaia_query(5, columns=["phot_g_mean_mag"], order_by=None)
        'SELECT TOP 5 source_id, ra, dec, phot_g_mean_mag FROM gaiadr3.gaia_source'
    """
    if int(limit) <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    selected = list(REQUIRED_COLUMNS)
    for column in columns:
        column = _check_identifier(column.lower())
        if column not in selected:
            selected.append(column)

    query = f"SELECT TOP {int(limit)} {', '.join(selected)} FROM {_check_identifier(table)}"

    if max_magnitude is not None:
        query += f" WHERE phot_g_mean_mag < {float(max_magnitude)!r}"
    if order_by:
        query += f" ORDER BY {_check_identifier(order_by)} ASC"

    return query


def validate_columns(frame: pd.DataFrame, columns: Iterable[str]) -> None:
    """Ensure a fetched frame carries every expected column.

    Raises:
        SchemaMismatchError: Listing the missing columns
    """
    missing = [column for column in columns if column not in frame.columns]
    if missing:
        raise SchemaMismatchError(
            f"Catalog result is missing columns {missing}; "
            f"got {list(frame.columns)}"
        )


def _default_service():
    # Imported lazily: creating the astroquery Gaia client contacts the archive
    from astroquery.gaia import Gaia

    return Gaia


class GaiaCatalog:
    """Client for the Gaia archive TAP service."""

    def __init__(self, service=None, table: str = DEFAULT_GAIA_TABLE):
        """Initialize Gaia catalog client.

        Args:
            service: Object with a ``launch_job(query)`` method returning a
                job whose ``get_results()`` gives an astropy Table. Defaults
                to ``astroquery.gaia.Gaia``.
            table: Gaia table queried by ``fetch``
        """
        self._service = service
        self.table = table

    @property
    def service(self):
        if self._service is None:
            self._service = _default_service()
        return self._service

    def run_query(self, query: str) -> pd.DataFrame:
        """Run an ADQL query and return its rows.

        Raises:
            CatalogFetchError: If the service is unreachable or rejects the
                query
        """
        logger.info("Running Gaia query: %s", query)
        try:
            job = self.service.launch_job(query)
            results = job.get_results()
        except Exception as e:
            raise CatalogFetchError(f"Gaia query failed: {e}") from e

        frame = results.to_pandas()
        frame.columns = [str(column).lower() for column in frame.columns]
        logger.info("Gaia returned %d rows", len(frame))
        return frame

    def fetch(
        self,
        limit: int,
        columns: Sequence[str] = DEFAULT_ATTRIBUTE_COLUMNS,
        max_magnitude: Optional[float] = None,
        order_by: Optional[str] = "phot_g_mean_mag",
    ) -> pd.DataFrame:
        """Fetch a bounded set of Gaia sources.

        Args:
            limit: Maximum number of rows
            columns: Attribute columns to request besides id and coordinates
            max_magnitude: Only sources brighter than this G magnitude
            order_by: Sort column, ascending

        Returns:
            DataFrame with ``source_id``, ``ra``, ``dec`` and the requested
            attribute columns

        Raises:
            CatalogFetchError: On any service failure
            SchemaMismatchError: If the result lacks a requested column
        """
        query = build_gaia_query(
            limit,
            columns=columns,
            table=self.table,
            max_magnitude=max_magnitude,
            order_by=order_by,
        )
        frame = self.run_query(query)
        validate_columns(frame, list(REQUIRED_COLUMNS) + [c.lower() for c in columns])
        return frame
