"""
Core module - configuration, market profiles, and base exception
"""

from .config import Config, MarketProfile, get_market_profile, load_market_profile
from .exceptions import TerritoryLabError

__all__ = ['Config', 'MarketProfile', 'get_market_profile', 'load_market_profile', 'TerritoryLabError']
