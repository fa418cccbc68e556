"""Setup configuration for celestial-catalog package."""

from setuptools import find_packages, setup

setup(
    name="celestial-catalog",
    version="0.1.0",
    author="Maximilian Sperlich",
    description="Relational schema and Gaia loader for celestial object catalogs",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    url="https://github.com/krshI27/celestial-catalog",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "numpy>=2.0",
        "astropy>=7.0",
        "astroquery>=0.4",
        "pandas>=2.0",
        "sqlalchemy>=2.0",
        "psycopg[binary]>=3.1",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=9.0",
            "pytest-cov>=7.0",
            "black>=25.0",
            "flake8>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "celestial-catalog-load=celestial_catalog.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Astronomy",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
)
