"""Setup configuration for jobrunner."""

from setuptools import setup, find_packages

setup(
    name="jobrunner",
    version="1.0.0",
    description="Async job runner with timeout, linear backoff retry and a dead-letter queue",
    author="Your Name",
    packages=find_packages(include=["jobrunner", "jobrunner.*"]),
    install_requires=[
        "click>=8.1.7",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-json-logger>=3.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "jobrunner=jobrunner.cli:cli",
        ],
    },
    python_requires=">=3.9",
)
