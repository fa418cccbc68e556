"""Tests for constellation names and lookup."""

import numpy as np

from celestial_catalog.constellations import (
    CONSTELLATION_NAMES,
    constellation_abbrev,
    constellation_name,
)


class TestConstellationNames:
    """Tests for the IAU constellation table."""

    def test_names_completeness(self):
        """Test that names exist for all 88 IAU constellations."""
        assert len(CONSTELLATION_NAMES) == 88, "Should have 88 constellations"
        assert len(set(CONSTELLATION_NAMES.values())) == 88, "Names should be unique"

    def test_abbreviation_format(self):
        for abbrev in CONSTELLATION_NAMES:
            assert len(abbrev) == 3, f"{abbrev} should be 3 characters"
            assert abbrev.isupper(), f"{abbrev} should be uppercase"


class TestConstellationLookup:
    """Tests for coordinate to constellation lookup."""

    def test_betelgeuse_in_orion(self):
        assert constellation_abbrev(88.7929, 7.4071) == "ORI"
        assert constellation_name(88.7929, 7.4071) == "Orion"

    def test_polaris_in_ursa_minor(self):
        assert constellation_name(37.9546, 89.2641) == "Ursa Minor"

    def test_sirius_in_canis_major(self):
        assert constellation_name(101.2872, -16.7161) == "Canis Major"

    def test_non_finite_coordinates(self):
        assert constellation_abbrev(np.nan, 10.0) is None
        assert constellation_name(10.0, np.inf) is None
