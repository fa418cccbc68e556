"""Load Gaia DR3 sources into the celestial catalog database.

Reads CELESTIAL_* settings from the environment or a .env file; see
celestial_catalog.config.

Requires: astroquery, sqlalchemy, and a database driver (psycopg for
PostgreSQL).
"""

import sys

from celestial_catalog.cli import main

if __name__ == "__main__":
    sys.exit(main())
