"""
Data models for small-site panel-array inspections.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .serialization import make_json_safe, parse_timestamp
from .taxonomy import AnomalyType, IECClass, Severity


@dataclass
class PanelCoordinate:
    """1-based (row, col) position of a panel within the array."""
    row: int
    col: int


@dataclass
class Anomaly:
    """
    A synthetic defect detected on a single panel of a small array.

    Attributes:
        id: Anomaly identifier, unique within one inspection
        inspection_id: Inspection this anomaly belongs to
        panel_id: Panel label, letter row plus zero-padded column (e.g. "B07")
        anomaly_type: Kind of defect
        severity: Impact tier
        iec_class: IEC defect class label
        power_loss_watts: Estimated power loss in watts
        temperature_delta: Temperature rise over neighbours in °C (hotspots only)
        coordinates: Panel position in the array
        created_at: When the record was generated
    """
    id: str
    inspection_id: str
    panel_id: str
    anomaly_type: AnomalyType
    severity: Severity
    iec_class: IECClass
    power_loss_watts: Optional[int] = None
    temperature_delta: Optional[int] = None
    coordinates: Optional[PanelCoordinate] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        """Validate anomaly data."""
        if self.power_loss_watts is not None and self.power_loss_watts < 0:
            raise ValueError("Power loss cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return make_json_safe(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Anomaly":
        coordinates = data.get("coordinates")
        return cls(
            id=data["id"],
            inspection_id=data["inspection_id"],
            panel_id=data["panel_id"],
            anomaly_type=AnomalyType(data["anomaly_type"]),
            severity=Severity.from_label(data["severity"]),
            iec_class=IECClass(data.get("iec_class", IECClass.UNCLASSIFIED.value)),
            power_loss_watts=data.get("power_loss_watts"),
            temperature_delta=data.get("temperature_delta"),
            coordinates=PanelCoordinate(**coordinates) if coordinates else None,
            created_at=parse_timestamp(data.get("created_at")) or datetime.now(),
        )


@dataclass
class Project:
    """Static descriptive metadata for a small inspection site."""
    id: str
    name: str
    panel_rows: int
    panel_cols: int
    location: Optional[str] = None
    capacity_mw: Optional[float] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.panel_rows <= 0 or self.panel_cols <= 0:
            raise ValueError("Panel grid dimensions must be positive")

    @property
    def total_panels(self) -> int:
        return self.panel_rows * self.panel_cols


@dataclass
class Inspection:
    """A single inspection run against a project."""
    id: str
    project_id: str
    inspection_date: datetime
    total_panels: int
    status: str = "completed"  # 'uploading', 'analyzing' or 'completed'
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class InspectionSummary:
    """
    Aggregate counters for a small-site inspection.

    Attributes:
        total_anomalies: Number of anomalies
        critical_count: Anomalies rated critical
        moderate_count: Anomalies rated moderate
        minor_count: Anomalies rated minor
        by_type: Anomaly count per anomaly type value
        estimated_power_loss: Sum of power loss in watts
        affected_panels: Number of distinct panels with an anomaly
        recommended_actions: Threshold-triggered maintenance recommendations
    """
    total_anomalies: int
    critical_count: int
    moderate_count: int
    minor_count: int
    by_type: Dict[str, int]
    estimated_power_loss: int
    affected_panels: int
    recommended_actions: List[str] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Anomalies of one inspection together with their summary."""
    inspection_id: str
    anomalies: List[Anomaly]
    summary: InspectionSummary

    def to_dict(self) -> Dict[str, Any]:
        return make_json_safe(self)
