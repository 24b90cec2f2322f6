# Errors package init
"""
Naksh Backend — Error Pipeline
================================

What:  Classification of raw failures (transformer.py) and the boundary that
       applies it around every route handler (boundary.py).

Flow:
    route handler raises anything
        → BoundaryRoute / async_boundary
        → classify(raw)  → APIError
        → APIError handler (middleware/errors.py) → failure envelope
"""

from naksh.errors.boundary import BoundaryRoute, async_boundary
from naksh.errors.transformer import classify

__all__ = ["BoundaryRoute", "async_boundary", "classify"]
