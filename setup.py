"""
Setup script for certprep.

certprep is the session and scoring engine behind a certification-exam
study app. It serves three roles:

1. Question Bank - Loads and normalizes a static multiple-choice bank
2. Study Sessions - Practice, review and timed exam runs with scoring
3. Analytics - Durable per-domain and per-question performance history

The engine is embedded by a hosting front end; it has no CLI of its own.
"""

from setuptools import find_packages, setup

setup(
    name="certprep",
    version="1.0.0",
    description="Session and scoring engine for certification exam practice",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="certprep",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # Tables for export
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
        # Export
        "pandas>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="exam practice cisa certification quiz education",
)
