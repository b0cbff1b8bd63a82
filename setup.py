"""Setup script for the amr-surveillance package following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="amr-surveillance",
    version="1.0.0",
    description="Antimicrobial resistance surveillance - dashboard aggregation service",
    author="AMR Surveillance Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["resistance*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "sqlalchemy>=2",
        "psycopg2-binary",
        "redis",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    entry_points={
        "console_scripts": [
            "amr-surveillance-api=resistance.entrypoints.resistance_api:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
)
