"""Shared utilities."""

from .parallel import map_in_order

__all__ = ['map_in_order']
