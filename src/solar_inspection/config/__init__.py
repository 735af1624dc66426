"""Configuration for the solar inspection engine."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
