"""Services module for the solar inspection engine."""

from .panel_simulator import PanelArraySimulator
from .site_simulator import MegaSolarSimulator
from .report_builder import build_analysis_result, build_site_report, calculate_summary
from .history_store import (
    HistoryRepository,
    InMemoryStorage,
    SQLiteStorage,
    create_analysis_history,
    create_mega_solar_history,
)
from .progress import ProgressSimulator, PANEL_ANALYSIS_STEPS, MEGA_SOLAR_ANALYSIS_STEPS
from .visualization import GridVisualizer

__all__ = [
    "PanelArraySimulator",
    "MegaSolarSimulator",
    "build_analysis_result",
    "build_site_report",
    "calculate_summary",
    "HistoryRepository",
    "InMemoryStorage",
    "SQLiteStorage",
    "create_analysis_history",
    "create_mega_solar_history",
    "ProgressSimulator",
    "PANEL_ANALYSIS_STEPS",
    "MEGA_SOLAR_ANALYSIS_STEPS",
    "GridVisualizer",
]
