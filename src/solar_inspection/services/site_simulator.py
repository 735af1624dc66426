"""
Synthetic inspection data for mega-solar sites.

This module simulates a drone survey of a large plant laid out as a grid of
panel blocks. It produces the static site description, an irregular block
layout resembling a real plant outline, and a sparse set of thermal anomalies
whose type mix, severities and temperatures follow fixed weighted tables.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config import settings
from ..models import (
    AnomalyCategory,
    AnomalyType,
    GeoBoundingBox,
    GPSCoordinate,
    PixelArea,
    Severity,
    SolarBlock,
    SolarSite,
    ThermalAnomaly,
)
from .panel_simulator import row_label

logger = logging.getLogger(__name__)

DEFAULT_SITE_CENTER = GPSCoordinate(latitude=35.5494, longitude=140.1195)
BLOCK_SIZE_DEG = 0.0001
ANOMALY_COUNT_JITTER = 10
IMAGERY_COVERAGE = 0.95


@dataclass(frozen=True)
class AnomalyProfile:
    """Sampling rules for one anomaly type."""
    anomaly_type: AnomalyType
    weight: float
    critical_probability: float
    description: str


ANOMALY_PROFILES: Tuple[AnomalyProfile, ...] = (
    AnomalyProfile(AnomalyType.HOTSPOT_SINGLE, 0.35, 0.4, "Module with a single-cell hotspot"),
    AnomalyProfile(AnomalyType.HOTSPOT_MULTI, 0.15, 1.0, "Module with hotspots across multiple cells"),
    AnomalyProfile(AnomalyType.BYPASS_DIODE, 0.25, 0.3, "Module with an active bypass diode"),
    AnomalyProfile(AnomalyType.VEGETATION, 0.15, 0.0, "Hotspot caused by vegetation shading"),
    AnomalyProfile(AnomalyType.SOILING, 0.10, 0.0, "Hotspot caused by soiling"),
)

# Uniform base ranges in °C before the severity multiplier
TEMPERATURE_RANGES_C: Dict[AnomalyCategory, Tuple[float, float]] = {
    AnomalyCategory.HOTSPOT: (65.0, 85.0),
    AnomalyCategory.BYPASS_DIODE: (55.0, 70.0),
    AnomalyCategory.VEGETATION: (45.0, 60.0),
    AnomalyCategory.SOILING: (40.0, 50.0),
}
DELTA_RANGES_C: Dict[AnomalyCategory, Tuple[float, float]] = {
    AnomalyCategory.HOTSPOT: (20.0, 35.0),
    AnomalyCategory.BYPASS_DIODE: (15.0, 25.0),
    AnomalyCategory.VEGETATION: (10.0, 20.0),
    AnomalyCategory.SOILING: (5.0, 10.0),
}
TEMPERATURE_MULTIPLIERS = {Severity.CRITICAL: 1.2, Severity.MODERATE: 0.8}
DELTA_MULTIPLIERS = {Severity.CRITICAL: 1.3, Severity.MODERATE: 0.7}


@dataclass(frozen=True)
class LayoutArea:
    """Rectangular fill region of the reference site outline (inclusive bounds)."""
    start_row: int
    end_row: int
    start_col: int
    end_col: int
    density: float

    def contains(self, row: int, col: int) -> bool:
        return self.start_row <= row <= self.end_row and self.start_col <= col <= self.end_col


# Plant outline on a 50 x 35 reference grid; other grid sizes are scaled onto it
REFERENCE_GRID = (50, 35)
SITE_LAYOUT: Tuple[LayoutArea, ...] = (
    LayoutArea(0, 15, 3, 18, 0.95),     # north-west
    LayoutArea(0, 12, 19, 28, 0.90),    # north-east
    LayoutArea(16, 35, 0, 15, 0.93),    # central west
    LayoutArea(16, 40, 16, 30, 0.97),   # main central area
    LayoutArea(36, 48, 2, 12, 0.88),    # south-west
    LayoutArea(41, 50, 13, 22, 0.85),   # south-east
    LayoutArea(45, 50, 23, 28, 0.75),   # southern tip
)


def block_id_for(block_x: int, block_y: int) -> str:
    return f"block-{block_y}-{block_x}"


def block_coordinate(
    center: GPSCoordinate, block_x: int, block_y: int, blocks_x: int, blocks_y: int
) -> GPSCoordinate:
    """
    Compute the GPS centre of a block from its grid indices.

    Blocks are laid out on a fixed angular pitch around the site centre.
    """
    return GPSCoordinate(
        latitude=center.latitude + (block_y - blocks_y / 2) * BLOCK_SIZE_DEG,
        longitude=center.longitude + (block_x - blocks_x / 2) * BLOCK_SIZE_DEG,
    )


class MegaSolarSimulator:
    """
    Generates pseudo-random inspection data for a mega-solar site.

    Anomalies are sparse: the target count follows a fixed defect rate over the
    estimated panel population plus a small jitter, and at most one anomaly is
    placed in any block.
    """

    def __init__(
        self,
        blocks_x: int = None,
        blocks_y: int = None,
        panels_per_block: int = None,
        defect_rate: float = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """
        Initialize the mega-solar simulator.

        Args:
            blocks_x: Default number of block columns
            blocks_y: Default number of block rows
            panels_per_block: Panels in each block
            defect_rate: Fraction of panels expected to be defective
            rng: Optional random generator (seeded from settings if None)
        """
        self.blocks_x = blocks_x or settings.site_blocks_x
        self.blocks_y = blocks_y or settings.site_blocks_y
        self.panels_per_block = panels_per_block or settings.panels_per_block
        self.defect_rate = settings.defect_rate if defect_rate is None else defect_rate
        self.rng = rng if rng is not None else np.random.default_rng(settings.random_seed)

        self._cumulative_weights = np.cumsum([profile.weight for profile in ANOMALY_PROFILES])

        logger.info(
            f"Mega-solar simulator initialized: {self.blocks_x}x{self.blocks_y} blocks, "
            f"{self.panels_per_block} panels/block, defect rate={self.defect_rate}"
        )

    def create_site(self, site_id: Optional[str] = None) -> SolarSite:
        """
        Build the static description of the simulated plant.

        Args:
            site_id: Site identifier (derived from the current time if None)

        Returns:
            SolarSite sized to the simulator's block grid
        """
        if site_id is None:
            site_id = f"site-{int(time.time() * 1000)}"

        half_lat = self.blocks_y / 2 * BLOCK_SIZE_DEG
        half_lng = self.blocks_x / 2 * BLOCK_SIZE_DEG
        center = DEFAULT_SITE_CENTER

        return SolarSite(
            id=site_id,
            name="Ichihara Mega Solar Plant",
            location="Ichihara, Chiba, Japan",
            capacity_mw=50.0,
            blocks_x=self.blocks_x,
            blocks_y=self.blocks_y,
            panels_per_block=self.panels_per_block,
            center=center,
            bounding_box=GeoBoundingBox(
                north_east=GPSCoordinate(center.latitude + half_lat, center.longitude + half_lng),
                south_west=GPSCoordinate(center.latitude - half_lat, center.longitude - half_lng),
            ),
        )

    def generate_layout(self, site: SolarSite) -> List[SolarBlock]:
        """
        Lay out blocks following the irregular outline of the reference plant.

        Args:
            site: Site to lay blocks out for

        Returns:
            Blocks present on the site; about 95% of them carry survey imagery
        """
        ref_rows, ref_cols = REFERENCE_GRID
        blocks = []
        now = datetime.now()

        for row in range(site.blocks_y):
            for col in range(site.blocks_x):
                ref_row = row * ref_rows // site.blocks_y
                ref_col = col * ref_cols // site.blocks_x
                area = next((a for a in SITE_LAYOUT if a.contains(ref_row, ref_col)), None)

                if area is None or self.rng.random() > area.density:
                    continue

                has_imagery = bool(self.rng.random() < IMAGERY_COVERAGE)
                captured_at = None
                if has_imagery:
                    captured_at = now - timedelta(seconds=float(self.rng.uniform(0, 7 * 24 * 3600)))

                blocks.append(SolarBlock(
                    id=block_id_for(col, row),
                    site_id=site.id,
                    block_number=f"{row_label(row // 10 + 1)}{row % 10}-{col + 1}",
                    grid_x=col,
                    grid_y=row,
                    coordinate=block_coordinate(site.center, col, row, site.blocks_x, site.blocks_y),
                    panels_per_block=site.panels_per_block,
                    has_imagery=has_imagery,
                    captured_at=captured_at,
                ))

        logger.debug(f"Generated layout with {len(blocks)} blocks for site {site.id}")
        return blocks

    def _target_anomaly_count(self, blocks_x: int, blocks_y: int) -> int:
        total_panels = blocks_x * blocks_y * self.panels_per_block
        jitter = int(self.rng.integers(0, ANOMALY_COUNT_JITTER + 1))
        return int(total_panels * self.defect_rate) + jitter

    def _pick_profile(self) -> AnomalyProfile:
        """Weighted draw over the anomaly profiles by cumulative-sum search."""
        draw = self.rng.random() * self._cumulative_weights[-1]
        index = int(np.searchsorted(self._cumulative_weights, draw, side="right"))
        return ANOMALY_PROFILES[min(index, len(ANOMALY_PROFILES) - 1)]

    def _pick_severity(self, profile: AnomalyProfile) -> Severity:
        if self.rng.random() < profile.critical_probability:
            return Severity.CRITICAL
        return Severity.MODERATE

    def _temperature(self, category: AnomalyCategory, severity: Severity) -> float:
        low, high = TEMPERATURE_RANGES_C[category]
        return round(float(self.rng.uniform(low, high)) * TEMPERATURE_MULTIPLIERS[severity], 1)

    def _delta_temperature(self, category: AnomalyCategory, severity: Severity) -> float:
        low, high = DELTA_RANGES_C[category]
        return round(float(self.rng.uniform(low, high)) * DELTA_MULTIPLIERS[severity], 1)

    def _affected_panels(self) -> List[str]:
        count = min(int(self.rng.integers(1, 4)), self.panels_per_block)
        indexes = self.rng.choice(self.panels_per_block, size=count, replace=False)
        return [f"panel-{int(index) + 1}" for index in sorted(indexes)]

    def generate_anomalies(
        self,
        site_id: str,
        blocks_x: Optional[int] = None,
        blocks_y: Optional[int] = None,
        center: Optional[GPSCoordinate] = None,
        blocks: Optional[Sequence[SolarBlock]] = None,
    ) -> List[ThermalAnomaly]:
        """
        Generate thermal anomalies scattered over a site's block grid.

        Args:
            site_id: Site the anomalies belong to
            blocks_x: Number of block columns (simulator default if None)
            blocks_y: Number of block rows (simulator default if None)
            center: GPS centre of the site
            blocks: Optional laid-out blocks; only those with imagery receive anomalies

        Returns:
            Anomalies on pairwise distinct blocks
        """
        blocks_x = blocks_x if blocks_x is not None else self.blocks_x
        blocks_y = blocks_y if blocks_y is not None else self.blocks_y
        if blocks_x <= 0 or blocks_y <= 0:
            raise ValueError("Block grid dimensions must be positive")
        center = center or DEFAULT_SITE_CENTER

        if blocks is not None:
            candidates = [(b.grid_x, b.grid_y) for b in blocks if b.has_imagery]
        else:
            candidates = [(x, y) for y in range(blocks_y) for x in range(blocks_x)]

        if not candidates:
            logger.warning(f"No surveyed blocks available for site {site_id}")
            return []

        target = max(1, min(self._target_anomaly_count(blocks_x, blocks_y), len(candidates)))
        chosen = self.rng.permutation(len(candidates))[:target]

        anomalies = []
        for candidate_index in chosen:
            block_x, block_y = candidates[int(candidate_index)]
            block_id = block_id_for(block_x, block_y)
            profile = self._pick_profile()
            severity = self._pick_severity(profile)
            category = profile.anomaly_type.category

            anomalies.append(ThermalAnomaly(
                id=f"anomaly-{block_id}-0",
                block_id=block_id,
                block_x=block_x,
                block_y=block_y,
                panel_ids=self._affected_panels(),
                anomaly_type=profile.anomaly_type,
                severity=severity,
                temperature_c=self._temperature(category, severity),
                delta_temperature_c=self._delta_temperature(category, severity),
                area=PixelArea(
                    x=int(self.rng.integers(0, 400)),
                    y=int(self.rng.integers(0, 300)),
                    width=int(self.rng.integers(50, 150)),
                    height=int(self.rng.integers(40, 120)),
                ),
                confidence=round(float(self.rng.uniform(0.8, 1.0)), 3),
                coordinate=block_coordinate(center, block_x, block_y, blocks_x, blocks_y),
                description=profile.description,
            ))

        logger.debug(
            f"Generated {len(anomalies)} anomalies for site {site_id} "
            f"over {len(candidates)} candidate blocks"
        )
        return anomalies

    def generate_site(
        self, site_id: Optional[str] = None
    ) -> Tuple[SolarSite, List[SolarBlock], List[ThermalAnomaly]]:
        """
        Generate a complete simulated survey: site, block layout and anomalies.

        Args:
            site_id: Site identifier (derived from the current time if None)

        Returns:
            Tuple of (site, blocks, anomalies)
        """
        site = self.create_site(site_id)
        blocks = self.generate_layout(site)
        anomalies = self.generate_anomalies(
            site.id, site.blocks_x, site.blocks_y, center=site.center, blocks=blocks
        )
        logger.info(
            f"Simulated survey of {site.name}: {len(blocks)} blocks, {len(anomalies)} anomalies"
        )
        return site, blocks, anomalies
