"""
Setup configuration for territorylab package.
"""

from setuptools import setup, find_packages

setup(
    name="territorylab",
    version="0.1.0",
    description="Creative territory generation, scoring and evolution for advertising briefs",
    packages=find_packages(include=["territorylab", "territorylab.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.6",
        "pydantic-graph>=0.4,<2",
        "google-genai>=1.40.0",
        "tenacity>=8.2",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "logfire>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
)
