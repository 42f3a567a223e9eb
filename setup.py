"""Setup script for the work item configuration exporter."""

from setuptools import setup, find_packages

setup(
    name="witexport",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["witexport_main"],
    install_requires=[
        "psutil>=5.9.0",
        "pyyaml>=6.0.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["witexport=witexport_main:main"],
    },
    python_requires=">=3.8",
)
