"""
Common utilities shared across routers.
"""

from .results import raise_for_result

__all__ = ["raise_for_result"]
