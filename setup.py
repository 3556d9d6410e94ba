"""
Setup script for GraphFront

Incremental multi-objective shortest paths over partitioned graphs
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

# Read requirements
requirements = (this_directory / "requirements.txt").read_text().splitlines()
requirements = [req for req in requirements if req and not req.startswith('#')]

setup(
    name="graphfront",
    version="0.1.0",
    author="Ayomide Caleb Adekoya",
    author_email="",
    description="Incremental Pareto-optimal paths over partitioned multi-objective graphs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Topic :: System :: Distributed Computing",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-cov>=4.1.0",
            "black>=23.11.0",
            "isort>=5.12.0",
            "mypy>=1.7.1",
            "flake8>=6.1.0",
        ],
        "mpi": [
            "mpi4py>=3.1.5",
        ],
    },
    entry_points={
        "console_scripts": [
            "graphfront-worker=graphfront.worker:main",
        ],
    },
)
