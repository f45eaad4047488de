"""Setup script for the uow package following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="sql-unit-of-work",
    version="1.0.0",
    description="Unit of Work - one transaction shared by many repositories",
    author="Unit of Work Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["uow", "uow.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "sqlalchemy>=2.0",
        "psycopg2-binary",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
        "Topic :: Database",
    ],
)
