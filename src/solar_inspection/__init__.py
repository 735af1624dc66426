"""
Solar Inspection Engine - synthetic drone-inspection reporting for solar plants.

This package generates plausible thermal-inspection anomaly data for small panel
arrays and multi-block mega-solar sites, aggregates it into reports, and keeps a
capped history of generated reports.
"""

__version__ = "0.1.0"
