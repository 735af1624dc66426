"""
Data models for mega-solar (multi-block) site inspections.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .serialization import make_json_safe, parse_timestamp
from .taxonomy import AnomalyCategory, AnomalyType, Severity


@dataclass
class GPSCoordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError("Latitude must be between -90 and 90")
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError("Longitude must be between -180 and 180")


@dataclass
class GeoBoundingBox:
    north_east: GPSCoordinate
    south_west: GPSCoordinate


@dataclass
class PixelArea:
    """Bounding box of an anomaly in thermal-image pixel space."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Area must be positive")


@dataclass
class SolarSite:
    """
    Static descriptive metadata for a mega-solar site.

    Attributes:
        id: Site identifier
        name: Display name
        location: Human-readable location
        capacity_mw: Nameplate capacity in megawatts
        blocks_x: Number of block columns in the site grid
        blocks_y: Number of block rows in the site grid
        panels_per_block: Panels per block (a 10x10 cluster by default)
        center: GPS centre of the site
        bounding_box: GPS extent of the site
        created_at: When the site record was created
    """
    id: str
    name: str
    location: str
    capacity_mw: float
    blocks_x: int
    blocks_y: int
    center: GPSCoordinate
    bounding_box: GeoBoundingBox
    panels_per_block: int = 100
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        """Validate site data."""
        if self.blocks_x <= 0 or self.blocks_y <= 0:
            raise ValueError("Block grid dimensions must be positive")
        if self.panels_per_block <= 0:
            raise ValueError("Panels per block must be positive")

    @property
    def total_blocks(self) -> int:
        return self.blocks_x * self.blocks_y

    @property
    def total_panels(self) -> int:
        return self.total_blocks * self.panels_per_block

    def to_dict(self) -> Dict[str, Any]:
        data = make_json_safe(self)
        data["total_blocks"] = self.total_blocks
        data["total_panels"] = self.total_panels
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SolarSite":
        box = data["bounding_box"]
        return cls(
            id=data["id"],
            name=data["name"],
            location=data["location"],
            capacity_mw=data["capacity_mw"],
            blocks_x=data["blocks_x"],
            blocks_y=data["blocks_y"],
            center=GPSCoordinate(**data["center"]),
            bounding_box=GeoBoundingBox(
                north_east=GPSCoordinate(**box["north_east"]),
                south_west=GPSCoordinate(**box["south_west"]),
            ),
            panels_per_block=data.get("panels_per_block", 100),
            created_at=parse_timestamp(data.get("created_at")) or datetime.now(),
        )


@dataclass
class SolarBlock:
    """A cluster of panels occupying one cell of the site grid."""
    id: str
    site_id: str
    block_number: str  # e.g. "A3-12"
    grid_x: int
    grid_y: int
    coordinate: GPSCoordinate
    panels_per_block: int = 100
    rows: int = 10
    cols: int = 10
    has_imagery: bool = True
    captured_at: Optional[datetime] = None

    @property
    def cell(self) -> "BlockCell":
        return BlockCell(grid_x=self.grid_x, grid_y=self.grid_y, has_imagery=self.has_imagery)


@dataclass
class BlockCell:
    """Grid position and survey state of a laid-out block, as kept in history snapshots."""
    grid_x: int
    grid_y: int
    has_imagery: bool = True


@dataclass
class ThermalAnomaly:
    """
    A synthetic defect detected in one block of a mega-solar site.

    Attributes:
        id: Anomaly identifier
        block_id: Block the anomaly was found in
        block_x: Block column in the site grid
        block_y: Block row in the site grid
        panel_ids: Affected panels within the block
        anomaly_type: Kind of defect
        severity: Impact tier (critical or moderate)
        temperature_c: Absolute panel temperature in °C
        delta_temperature_c: Temperature rise over surrounding panels in °C
        area: Pixel bounding box within the block's thermal image
        confidence: Detection confidence (0.0 to 1.0)
        coordinate: GPS position of the block
        description: Human-readable description
        category: Display category, derived from the anomaly type
    """
    id: str
    block_id: str
    block_x: int
    block_y: int
    panel_ids: List[str]
    anomaly_type: AnomalyType
    severity: Severity
    temperature_c: float
    delta_temperature_c: float
    area: PixelArea
    confidence: float
    coordinate: GPSCoordinate
    description: str = ""
    category: AnomalyCategory = field(init=False)

    def __post_init__(self) -> None:
        """Validate anomaly data."""
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError("Confidence must be between 0.0 and 1.0")
        if not self.panel_ids:
            raise ValueError("An anomaly must affect at least one panel")
        self.category = self.anomaly_type.category

    def to_dict(self) -> Dict[str, Any]:
        return make_json_safe(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThermalAnomaly":
        return cls(
            id=data["id"],
            block_id=data["block_id"],
            block_x=data["block_x"],
            block_y=data["block_y"],
            panel_ids=list(data["panel_ids"]),
            anomaly_type=AnomalyType(data["anomaly_type"]),
            severity=Severity.from_label(data["severity"]),
            temperature_c=data["temperature_c"],
            delta_temperature_c=data["delta_temperature_c"],
            area=PixelArea(**data["area"]),
            confidence=data["confidence"],
            coordinate=GPSCoordinate(**data["coordinate"]),
            description=data.get("description", ""),
        )


@dataclass
class TemperatureStats:
    min: float
    max: float
    avg: float


@dataclass
class BlockAnalysisResult:
    """Per-block aggregate of the anomalies found in that block."""
    block_id: str
    analyzed_at: datetime
    anomalies: List[ThermalAnomaly]
    temperature: TemperatureStats
    affected_panels: int
    estimated_power_loss_kw: float


@dataclass
class SiteSummary:
    """
    Site-wide aggregate counters.

    Attributes:
        total_anomalies: Number of anomalies
        critical_count: Anomalies rated critical
        moderate_count: Anomalies rated moderate
        by_category: Anomaly count per category value
        affected_blocks: Blocks with at least one anomaly
        affected_panels: Sum of affected panels over all anomalies
        estimated_total_loss_kw: Estimated total power loss in kW
        recommended_actions: Threshold-triggered maintenance recommendations
    """
    total_anomalies: int
    critical_count: int
    moderate_count: int
    by_category: Dict[str, int]
    affected_blocks: int
    affected_panels: int
    estimated_total_loss_kw: float
    recommended_actions: List[str] = field(default_factory=list)


@dataclass
class SiteAnalysisReport:
    site_id: str
    inspection_date: datetime
    analyzed_blocks: int
    total_blocks: int
    block_results: List[BlockAnalysisResult]
    summary: SiteSummary

    def to_dict(self) -> Dict[str, Any]:
        return make_json_safe(self)
