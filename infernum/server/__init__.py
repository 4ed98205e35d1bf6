"""
HTTP serving layer for the infernum engine.
"""

from .app import create_app

__all__ = ["create_app"]
