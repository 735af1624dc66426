"""Web interface for the solar inspection engine."""

from .app import create_app

__all__ = ["create_app"]
