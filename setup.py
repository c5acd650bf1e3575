"""
Setup script for surveystats package.
"""

from setuptools import setup, find_packages

setup(
    name="surveystats",
    version="0.1.0",
    packages=find_packages(include=["surveystats", "surveystats.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",

        # Result models
        "pydantic>=2.0.0",

        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'surveystats=surveystats.__main__:main',
        ],
    },
    description="Statistical engine for survey data: descriptives, reliability, "
                "correlation, group comparisons and factor analysis",
    keywords="statistics, survey, cronbach alpha, factor analysis, pca",
    python_requires=">=3.9",
)
