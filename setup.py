"""Setup script for the dispomed package following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="dispomed",
    version="1.0.0",
    description="Dispomed - drug shortage monitoring API and dashboard",
    author="Dispomed Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic",
        "sqlalchemy>=2.0,<2.1",
        "psycopg2-binary",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
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
            "dispomed-api=shortage_api.entrypoints.shortage_api:main",
            "dispomed-init-db=shortage_api.entrypoints.init_db:main",
            "dispomed-dashboard=shortage_dashboard.entrypoints.dashboard:main",
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
