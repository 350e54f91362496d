"""
Top-level package for the Trip Planner API.

All functionality lives in submodules under ``app``.
"""

__all__ = []
