"""
Routes Package for the Marketplace Collections API

This package contains all route modules organized by functionality.
"""

from . import collections

__all__ = ['collections']
