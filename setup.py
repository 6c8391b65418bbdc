#!/usr/bin/env python3
"""Setup configuration for ML-Inbound-Scraper."""

from __future__ import annotations

from pathlib import Path
from setuptools import setup, find_packages

# Leer README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Leer requirements
requirements_path = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_path.exists():
    with requirements_path.open(encoding="utf-8") as f:
        requirements = [
            line.strip()
            for line in f
            if line.strip() and not line.startswith("#")
        ]

setup(
    name="ml-inbound-scraper",
    version="1.0.0",
    description="Orquestador de sesiones de navegador para agendamientos de envíos de Mercado Livre",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="ML-Inbound-Scraper Team",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["api_server", "main"],
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ml-inbound-cli=ml_inbound_scraper.cli.main:main",
            "ml-inbound-api=api_server:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
    ],
    keywords="mercadolivre scraping cookies sessions",
)
