"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger source-storage models used by ``ledger_book``.
"""

from .ledger import LB_COLLECTIONS, Base, LbAccount, LbSourceRecord

__all__ = [
    "Base",
    "LB_COLLECTIONS",
    "LbAccount",
    "LbSourceRecord",
]
