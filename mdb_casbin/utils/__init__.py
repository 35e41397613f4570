"""
Utility functions for MDB_CASBIN.
"""

from .mongo import run_in_transaction, store_errors

__all__ = ["run_in_transaction", "store_errors"]
