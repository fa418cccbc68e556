"""Exceptions raised by the catalog loader and database helpers."""


class CelestialCatalogError(Exception):
    """Base class for all celestial catalog errors."""


class CatalogFetchError(CelestialCatalogError, RuntimeError):
    """The remote catalog service could not be queried.

    Fatal to the current run: nothing has been written to the object
    tables when this is raised.
    """


class SchemaMismatchError(CelestialCatalogError, ValueError):
    """Fetched columns do not match what the loader expects."""


class ObjectInUseError(CelestialCatalogError):
    """A celestial object cannot be deleted while other rows reference it."""
