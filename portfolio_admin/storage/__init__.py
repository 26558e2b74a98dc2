"""
Storage Layer.

This package handles local state: the configuration file, the in-memory query
cache and the contact-form cooldown.
"""

from .cache import QueryCache, QueryState
from .config_manager import ConfigManager
from .cooldown import SubmissionCooldown

__all__ = ["ConfigManager", "QueryCache", "QueryState", "SubmissionCooldown"]
