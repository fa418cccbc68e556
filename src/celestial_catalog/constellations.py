"""IAU constellations and constellation lookup for sky coordinates.

Constellation membership is resolved with astropy's implementation of the
Roman (1987) boundary lookup, so no catalog download is needed.
"""

from typing import Optional

import numpy as np
from astropy import units as u
from astropy.coordinates import SkyCoord

# IAU 3-letter abbreviation (upper case) -> full constellation name
CONSTELLATION_NAMES = {
    "AND": "Andromeda",
    "ANT": "Antlia",
    "APS": "Apus",
    "AQR": "Aquarius",
    "AQL": "Aquila",
    "ARA": "Ara",
    "ARI": "Aries",
    "AUR": "Auriga",
    "BOO": "Bootes",
    "CAE": "Caelum",
    "CAM": "Camelopardalis",
    "CNC": "Cancer",
    "CVN": "Canes Venatici",
    "CMA": "Canis Major",
    "CMI": "Canis Minor",
    "CAP": "Capricornus",
    "CAR": "Carina",
    "CAS": "Cassiopeia",
    "CEN": "Centaurus",
    "CEP": "Cepheus",
    "CET": "Cetus",
    "CHA": "Chamaeleon",
    "CIR": "Circinus",
    "COL": "Columba",
    "COM": "Coma Berenices",
    "CRA": "Corona Australis",
    "CRB": "Corona Borealis",
    "CRV": "Corvus",
    "CRT": "Crater",
    "CRU": "Crux",
    "CYG": "Cygnus",
    "DEL": "Delphinus",
    "DOR": "Dorado",
    "DRA": "Draco",
    "EQU": "Equuleus",
    "ERI": "Eridanus",
    "FOR": "Fornax",
    "GEM": "Gemini",
    "GRU": "Grus",
    "HER": "Hercules",
    "HOR": "Horologium",
    "HYA": "Hydra",
    "HYI": "Hydrus",
    "IND": "Indus",
    "LAC": "Lacerta",
    "LEO": "Leo",
    "LMI": "Leo Minor",
    "LEP": "Lepus",
    "LIB": "Libra",
    "LUP": "Lupus",
    "LYN": "Lynx",
    "LYR": "Lyra",
    "MEN": "Mensa",
    "MIC": "Microscopium",
    "MON": "Monoceros",
    "MUS": "Musca",
    "NOR": "Norma",
    "OCT": "Octans",
    "OPH": "Ophiuchus",
    "ORI": "Orion",
    "PAV": "Pavo",
    "PEG": "Pegasus",
    "PER": "Perseus",
    "PHE": "Phoenix",
    "PIC": "Pictor",
    "PSC": "Pisces",
    "PSA": "Piscis Austrinus",
    "PUP": "Puppis",
    "PYX": "Pyxis",
    "RET": "Reticulum",
    "SGE": "Sagitta",
    "SGR": "Sagittarius",
    "SCO": "Scorpius",
    "SCL": "Sculptor",
    "SCT": "Scutum",
    "SER": "Serpens",
    "SEX": "Sextans",
    "TAU": "Taurus",
    "TEL": "Telescopium",
    "TRI": "Triangulum",
    "TRA": "Triangulum Australe",
    "TUC": "Tucana",
    "UMA": "Ursa Major",
    "UMI": "Ursa Minor",
    "VEL": "Vela",
    "VIR": "Virgo",
    "VOL": "Volans",
    "VUL": "Vulpecula",
}


def constellation_abbrev(ra: float, dec: float) -> Optional[str]:
    """Return the IAU abbreviation of the constellation containing a position.

    Args:
        ra: Right ascension in degrees (ICRS)
        dec: Declination in degrees (ICRS)

    Returns:
        Upper-case 3-letter abbreviation, or None for non-finite input

    Example:
        >>> constellation_abbrev(88.79, 7.41)  # Betelgeuse
        'ORI'
    """
    if not (np.isfinite(ra) and np.isfinite(dec)):
        return None

    coord = SkyCoord(ra=float(ra) * u.deg, dec=float(dec) * u.deg, frame="icrs")
    return str(coord.get_constellation(short_name=True)).upper()


def constellation_name(ra: float, dec: float) -> Optional[str]:
    """Return the full IAU name of the constellation containing a position."""
    abbrev = constellation_abbrev(ra, dec)
    if abbrev is None:
        return None
    return CONSTELLATION_NAMES.get(abbrev)
