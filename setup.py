"""
Trading Journal Valuation Engine
Setup configuration for package installation
"""

from setuptools import setup, find_packages

setup(
    name="trade-journal-valuation",
    version="0.1.0",
    description="Position valuation, P&L and futures contract calendar engine for a multi-asset trading journal",
    author="",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "pyarrow>=12.0.0",
        "python-dateutil>=2.8.2",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.11.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
        ]
    },
)
