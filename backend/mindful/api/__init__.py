"""
Mindful Companion - API Package

REST routes and request/response schemas for the chat UI.
"""

from . import routes

__all__ = ["routes"]
