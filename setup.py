#!/usr/bin/env python
"""
Back-Office Dashboard Setup
"""

from pathlib import Path

from setuptools import setup, find_packages

HERE = Path(__file__).parent


def read_requirements(name: str):
    lines = (HERE / name).read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.lstrip().startswith("#")]


TEST_REQUIRES = [
    "pytest>=7.4.0",
    "pytest-asyncio>=0.23.0",
    "aiosqlite>=0.19.0",
]

setup(
    name="backoffice-dashboard",
    version="1.0.0",
    description="Admin KPI aggregation API and Streamlit dashboard for a marketplace back office",
    long_description=(HERE / "README.md").read_text(encoding="utf-8"),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["run_server"],
    python_requires=">=3.11",
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "test": TEST_REQUIRES,
        "dev": TEST_REQUIRES + ["pytest-cov>=4.1.0", "black>=23.0.0", "ruff>=0.1.0", "mypy>=1.5.0"],
    },
    entry_points={
        "console_scripts": [
            "backoffice-api=run_server:main",
            "backoffice-seed=backoffice.database.seed:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: FastAPI",
        "Topic :: Office/Business",
    ],
    keywords=["dashboard", "kpi", "back-office", "fastapi", "streamlit"],
    include_package_data=True,
    zip_safe=False,
)
