"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application: configuration, stored records and cache statistics.
"""

from .config import AppConfig
from .records import (
    ContactInfo,
    Project,
    RecordKind,
    Settings,
    Skill,
    SocialLink,
)
from .stats import CacheStats

__all__ = [
    "AppConfig",
    "CacheStats",
    "ContactInfo",
    "Project",
    "RecordKind",
    "Settings",
    "Skill",
    "SocialLink",
]
