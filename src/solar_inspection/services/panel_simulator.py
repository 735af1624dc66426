"""
Synthetic anomaly generation for small panel-array inspections.

This module simulates the output of a drone thermal-inspection pipeline over a
small rectangular array of panels. Anomalies are drawn from fixed label tables
and severity-dependent ranges; nothing is derived from real imagery.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

import numpy as np

from ..config import settings
from ..models import (
    Anomaly,
    AnomalyType,
    IECClass,
    PanelCoordinate,
    Severity,
)

logger = logging.getLogger(__name__)

ANOMALY_TYPES: Tuple[AnomalyType, ...] = (
    AnomalyType.HOTSPOT_SINGLE,
    AnomalyType.HOTSPOT_MULTI,
    AnomalyType.BYPASS_DIODE,
    AnomalyType.SOILING,
    AnomalyType.VEGETATION,
)
SEVERITY_LEVELS: Tuple[Severity, ...] = (Severity.CRITICAL, Severity.MODERATE, Severity.MINOR)
IEC_CLASSES: Tuple[IECClass, ...] = (
    IECClass.IEC1,
    IECClass.IEC2,
    IECClass.IEC3,
    IECClass.UNCLASSIFIED,
)

MIN_ANOMALIES = 3
MAX_ANOMALIES = 10

# Half-open [low, high) integer ranges
POWER_LOSS_RANGES_W = {
    Severity.CRITICAL: (100, 250),
    Severity.MODERATE: (50, 100),
    Severity.MINOR: (20, 50),
}
HOTSPOT_DELTA_RANGES_C = {
    Severity.CRITICAL: (20, 40),
    Severity.MODERATE: (10, 20),
    Severity.MINOR: (5, 10),
}


def row_label(row: int) -> str:
    """
    Convert a 1-based row index into a spreadsheet-style letter label.

    Args:
        row: 1-based row index

    Returns:
        "A" for 1, "Z" for 26, "AA" for 27 and so on
    """
    if row <= 0:
        raise ValueError("Row index must be positive")
    label = ""
    while row > 0:
        row, remainder = divmod(row - 1, 26)
        label = chr(ord("A") + remainder) + label
    return label


def panel_id_for(row: int, col: int) -> str:
    """Build a panel identifier such as "B07" from a 1-based coordinate."""
    return f"{row_label(row)}{col:02d}"


class PanelArraySimulator:
    """
    Generates pseudo-random inspection anomalies for a small panel array.

    Each generation pass picks 3-10 distinct panels and assigns every one a
    uniformly drawn type, severity and IEC class, a severity-dependent power
    loss and, for hotspots, a severity-dependent temperature rise.
    """

    def __init__(
        self,
        panel_rows: int = None,
        panel_cols: int = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """
        Initialize the panel array simulator.

        Args:
            panel_rows: Default number of panel rows
            panel_cols: Default number of panel columns
            rng: Optional random generator (seeded from settings if None)
        """
        self.panel_rows = panel_rows or settings.panel_rows
        self.panel_cols = panel_cols or settings.panel_cols
        self.rng = rng if rng is not None else np.random.default_rng(settings.random_seed)

        logger.info(
            f"Panel array simulator initialized: {self.panel_rows}x{self.panel_cols} panels"
        )

    def _pick_panels(self, rows: int, cols: int, count: int) -> List[Tuple[int, int]]:
        """
        Choose distinct 1-based panel coordinates.

        Shuffles the full coordinate domain and takes the first ``count``
        entries, so the pick always terminates.
        """
        flat_indexes = self.rng.permutation(rows * cols)[:count]
        return [(int(index) // cols + 1, int(index) % cols + 1) for index in flat_indexes]

    def _power_loss(self, severity: Severity) -> int:
        low, high = POWER_LOSS_RANGES_W[severity]
        return int(self.rng.integers(low, high))

    def _temperature_delta(self, anomaly_type: AnomalyType, severity: Severity) -> Optional[int]:
        if not anomaly_type.is_hotspot:
            return None
        low, high = HOTSPOT_DELTA_RANGES_C[severity]
        return int(self.rng.integers(low, high))

    def generate_anomalies(
        self,
        inspection_id: str,
        panel_rows: Optional[int] = None,
        panel_cols: Optional[int] = None,
    ) -> List[Anomaly]:
        """
        Generate a randomized anomaly list for one inspection.

        Args:
            inspection_id: Inspection the anomalies belong to
            panel_rows: Number of panel rows (simulator default if None)
            panel_cols: Number of panel columns (simulator default if None)

        Returns:
            Between 3 and 10 anomalies (fewer only if the array is smaller),
            each on a distinct panel
        """
        rows = panel_rows if panel_rows is not None else self.panel_rows
        cols = panel_cols if panel_cols is not None else self.panel_cols
        if rows <= 0 or cols <= 0:
            raise ValueError("Panel grid dimensions must be positive")

        count = int(self.rng.integers(MIN_ANOMALIES, MAX_ANOMALIES + 1))
        count = min(count, rows * cols)

        created_at = datetime.now()
        anomalies = []

        for index, (row, col) in enumerate(self._pick_panels(rows, cols, count), start=1):
            anomaly_type = ANOMALY_TYPES[self.rng.integers(len(ANOMALY_TYPES))]
            severity = SEVERITY_LEVELS[self.rng.integers(len(SEVERITY_LEVELS))]
            iec_class = IEC_CLASSES[self.rng.integers(len(IEC_CLASSES))]

            anomalies.append(Anomaly(
                id=f"anomaly-{index}",
                inspection_id=inspection_id,
                panel_id=panel_id_for(row, col),
                anomaly_type=anomaly_type,
                severity=severity,
                iec_class=iec_class,
                power_loss_watts=self._power_loss(severity),
                temperature_delta=self._temperature_delta(anomaly_type, severity),
                coordinates=PanelCoordinate(row=row, col=col),
                created_at=created_at,
            ))

        logger.debug(
            f"Generated {len(anomalies)} anomalies for inspection {inspection_id} "
            f"on a {rows}x{cols} array"
        )
        return anomalies
