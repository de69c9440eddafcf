#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Subtitle Translator - Setup Configuration
Batch translation of .srt subtitle files with Google Gemini.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Read requirements
requirements_path = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_path.exists():
    requirements = [
        line.strip()
        for line in requirements_path.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="subtitle-translator",
    version="1.0.0",
    description="Batch subtitle translator with glossary extraction and rate-limited job scheduling",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Subtitle Translator Team",
    python_requires=">=3.9",
    packages=find_packages(include=["config", "config.*", "core", "core.*",
                                    "ai_providers", "ai_providers.*"]),
    py_modules=["translate_subtitles"],
    install_requires=requirements,
    extras_require={
        # Development dependencies
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "subtitle-translator=translate_subtitles:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Text Processing :: Linguistic",
        "Topic :: Multimedia :: Video",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="translation subtitles srt gemini batch glossary",
)
