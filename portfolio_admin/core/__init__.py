"""
Core Logic Layer.

This package contains the data-access layer and the services built on it.
"""

from .contact import ContactFormService, ContactMessage
from .portfolio import PortfolioSnapshot, load_snapshot
from .repository import PortfolioRepository

__all__ = [
    "ContactFormService",
    "ContactMessage",
    "PortfolioRepository",
    "PortfolioSnapshot",
    "load_snapshot",
]
