"""
TerritoryLab - Creative Territory Generation and Scoring

Turns a creative brief into scored advertising territories with headline
variants and images, and regenerates them while keeping starred selections.
"""

__version__ = "0.1.0"
__author__ = "TerritoryLab Team"
