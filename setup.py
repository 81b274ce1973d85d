"""
Setup script for the Jira ingestion pipeline.
"""
from setuptools import setup, find_packages

setup(
    name="jira-ingest",
    version="1.0.0",
    description="Checkpointed Jira ingestion and JSONL transformation pipeline",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config", "main", "verify_output"],
    install_requires=[
        "requests>=2.27.0",
        "tenacity>=8.2.3",
        "python-dotenv>=1.0.0",
        "tqdm>=4.66.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    python_requires=">=3.8",
)
