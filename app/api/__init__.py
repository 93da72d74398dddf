"""
API package for the Chronos API
Contains FastAPI routes, schemas, and dependencies
"""

from .main import create_app

__all__ = ["create_app"]
