"""
DavSync - Utilities Package

Concurrency helpers shared by the protocol client and the workers.

Author: DavSync Project
"""

from .bounded_ttl_map import BoundedTTLMap
from .parametrized_lock import ParametrizedLock
from .cancellation import (
    cancellation_scope,
    check_cancelled,
    is_cancelled,
    acquire_cancellable
)

__all__ = [
    'BoundedTTLMap',
    'ParametrizedLock',
    'cancellation_scope',
    'check_cancelled',
    'is_cancelled',
    'acquire_cancellable'
]
