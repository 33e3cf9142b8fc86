"""
Setup script for learner-engine.

Learner Engine estimates what a student knows and decides what they
should practice next. It combines three models:

1. Item Response Theory - ability estimation and adaptive item selection
2. Bayesian Knowledge Tracing - per-topic mastery
3. SM-2 / FSRS - spaced repetition scheduling

The 'learner-engine' command exposes simulation and preview tools.
"""

from setuptools import find_packages, setup

setup(
    name="learner-engine",
    version="0.1.0",
    description="Adaptive learner modeling: IRT, knowledge tracing and spaced repetition",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["learner_engine", "learner_engine.*"]),
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "learner-engine=learner_engine.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning adaptive irt knowledge-tracing spaced-repetition education",
)
