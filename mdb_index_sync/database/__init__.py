"""
Database layer.

Provides the store handle the synchronization engine submits index requests to.
"""

from .connection import STORE_ERRORS, IndexStore, MongoIndexStore

__all__ = [
    "IndexStore",
    "MongoIndexStore",
    "STORE_ERRORS",
]
