"""
DavSync - Operations Package

This package contains the reconciliation engine.
"""

from .sync_operations import SyncOperations

__all__ = ['SyncOperations']
