"""Adapters — bindings for the external generator and formatter.

Public re-exports for convenient access.
"""

from protobuild.adapters.base import Adapter, ExecutionContext
from protobuild.adapters.mock import MockAdapter
from protobuild.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
