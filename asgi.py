"""
asgi.py -- ASGI entry point for CollabCal.

Run with:  uvicorn asgi:app --reload

api/main.py owns the application object and its lifespan (the composition
root). This module only gives process managers a stable import path.
"""

from api.main import app

__all__ = ["app"]
