"""API module for mediakeeper.

Der Haupteinstiegspunkt ist `api_router` aus routers/, in main.py unter /api gemountet.
"""

from mediakeeper.api.routers import api_router

__all__ = ["api_router"]
