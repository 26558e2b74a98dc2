"""
Remote Services Layer.

This package handles all communication with the hosted table store and the
mail relay.
"""

from .client import StoreClient
from .mail import MailRelayClient
from .protocol import Order, TableStore

__all__ = ["MailRelayClient", "Order", "StoreClient", "TableStore"]
