"""Setup script for covid-test-result-api package following Cosmic Python pattern."""

from setuptools import setup, find_packages

setup(
    name="covid-test-result-api",
    version="1.3.0",
    description="Get a COVID-19 test result - middleware API over the clinical records store",
    author="Test Result API Team",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "sqlalchemy>=2",
        "python-dotenv",
        # SQL Server driver for the default clinical records store URI
        "pymssql",
        "tzdata",
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
            "covid-result-api=covid_result.entrypoints.api:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
)
