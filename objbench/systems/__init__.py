"""
Storage targets addressed by URI scheme.
"""

from .base import ObjectInfo, StorageTarget

__all__ = ['ObjectInfo', 'StorageTarget']
