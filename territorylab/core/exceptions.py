"""
Base exception for TerritoryLab.

Service modules define their own subclasses next to the code that raises them.
"""


class TerritoryLabError(Exception):
    """Base class for every error raised by TerritoryLab."""
