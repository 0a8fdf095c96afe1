#!/usr/bin/env python
# read the contents of your README file
from pathlib import Path

from setuptools import find_packages, setup

this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(
    name="metdownscale",
    version="0.1.0",
    packages=find_packages(include=["metdownscale", "metdownscale.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "xarray",
    ],
    extras_require={
        "test": ["pytest"],
    },
    long_description=long_description,
    long_description_content_type="text/markdown",
)
