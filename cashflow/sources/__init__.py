"""Sources module - shapes of the upstream record stores the engine reads."""
from cashflow.sources import schemas

__all__ = ["schemas"]
