"""Setup script for the qollage circuit drawing package"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="qollage",
    version="0.1.0",
    author="qollage developers",
    description="Quantum circuit drawing through Typst and quill",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Physics",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20.0",
        "Pillow>=9.0.0",
        "typst>=0.13.0",
    ],
    extras_require={
        "viz": ["matplotlib>=3.3.0"],
        "qoqo": ["qoqo>=1.15"],
        "dev": ["pytest>=6.0.0", "matplotlib>=3.3.0", "black", "flake8", "mypy"],
    },
)
