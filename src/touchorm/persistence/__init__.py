"""
Persistence layer components: sessions, unit of work, identity map.
"""

from .identity_map import IdentityMap
from .session import Session
from .transaction import TransactionError, TransactionManager
from .unit_of_work import UnitOfWork

__all__ = ["IdentityMap", "Session", "TransactionError", "TransactionManager", "UnitOfWork"]
