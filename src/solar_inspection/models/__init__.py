"""Data models for the solar inspection engine."""

from .taxonomy import (
    Severity,
    AnomalyCategory,
    AnomalyType,
    IECClass,
)
from .inspection import (
    PanelCoordinate,
    Anomaly,
    Project,
    Inspection,
    InspectionSummary,
    AnalysisResult,
)
from .mega_solar import (
    GPSCoordinate,
    GeoBoundingBox,
    PixelArea,
    SolarSite,
    SolarBlock,
    BlockCell,
    ThermalAnomaly,
    TemperatureStats,
    BlockAnalysisResult,
    SiteSummary,
    SiteAnalysisReport,
)
from .serialization import make_json_safe

__all__ = [
    "Severity",
    "AnomalyCategory",
    "AnomalyType",
    "IECClass",
    "PanelCoordinate",
    "Anomaly",
    "Project",
    "Inspection",
    "InspectionSummary",
    "AnalysisResult",
    "GPSCoordinate",
    "GeoBoundingBox",
    "PixelArea",
    "SolarSite",
    "SolarBlock",
    "BlockCell",
    "ThermalAnomaly",
    "TemperatureStats",
    "BlockAnalysisResult",
    "SiteSummary",
    "SiteAnalysisReport",
    "make_json_safe",
]
