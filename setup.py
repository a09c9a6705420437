"""
Setup script for timora.

Timora turns a small study request (subjects, daily hours, days, goal) into a
rule-compliant day-by-day timetable, and tracks Pomodoro-style focus sessions
against it:

1. Planner - deterministic timetable generator honouring the scheduling rules
2. Session timer - focus/break state machine with completion events
3. Progress sync - coins, focus hours and streaks reconciled with a store

The 'timora' command is the primary entry point.
"""

from setuptools import find_packages, setup

setup(
    name="timora",
    version="1.0.0",
    description="Rule-based study timetables and focus-session tracking",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Timora",
    packages=find_packages(include=["timora", "timora.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
        "postgres": [
            "psycopg2-binary>=2.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "timora=timora.cli.timora_cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
    ],
    keywords="study-planner pomodoro timetable education",
)
