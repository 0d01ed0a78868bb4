"""
Drain Package.

Burn-first emptying of worker holdings.
"""

from .handler import DrainHandler
from .models import DrainResult


__all__ = ["DrainHandler", "DrainResult"]
