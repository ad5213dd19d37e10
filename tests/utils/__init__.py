"""
Test utilities for the component registry.
"""

from .async_helpers import AsyncTestHelper

__all__ = [
    "AsyncTestHelper",
]
