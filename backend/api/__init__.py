"""API route handlers."""
from . import accounts, investments, performance, transactions

__all__ = ["accounts", "investments", "performance", "transactions"]
