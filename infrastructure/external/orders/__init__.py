"""Order API client."""
from .client import HttpOrderApi, OrderCreationError

__all__ = ["HttpOrderApi", "OrderCreationError"]
