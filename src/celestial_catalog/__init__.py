"""Celestial Catalog: relational storage for astronomical catalog data.

This package defines a normalized schema for celestial objects, their
numeric and categorical criteria and change history, and loads Gaia
archive records into it.
"""

__version__ = "0.1.0"
__author__ = "Maximilian Sperlich"
__email__ = "your.email@example.com"
