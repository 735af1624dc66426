"""Tests for grid rendering."""

import base64

import numpy as np
import pytest

from solar_inspection.models import (
    Anomaly,
    AnomalyType,
    GPSCoordinate,
    IECClass,
    PanelCoordinate,
    PixelArea,
    Severity,
    ThermalAnomaly,
)
from solar_inspection.services.site_simulator import MegaSolarSimulator
from solar_inspection.services.visualization import (
    NOT_SURVEYED_CODE,
    GridVisualizer,
    panel_severity_grid,
    site_category_grid,
)

PNG_MAGIC = b"\x89PNG"


def panel_anomaly(row, col, severity):
    return Anomaly(
        id=f"anomaly-{row}-{col}",
        inspection_id="inspection-1",
        panel_id=f"{chr(64 + row)}{col:02d}",
        anomaly_type=AnomalyType.HOTSPOT_SINGLE,
        severity=severity,
        iec_class=IECClass.IEC2,
        power_loss_watts=60,
        coordinates=PanelCoordinate(row=row, col=col),
    )


def block_anomaly(x, y, anomaly_type):
    return ThermalAnomaly(
        id=f"anomaly-block-{y}-{x}-0",
        block_id=f"block-{y}-{x}",
        block_x=x,
        block_y=y,
        panel_ids=["panel-1"],
        anomaly_type=anomaly_type,
        severity=Severity.MODERATE,
        temperature_c=48.0,
        delta_temperature_c=9.0,
        area=PixelArea(x=0, y=0, width=60, height=50),
        confidence=0.85,
        coordinate=GPSCoordinate(latitude=35.5, longitude=140.1),
    )


@pytest.fixture
def site_simulator(rng):
    return MegaSolarSimulator(blocks_x=14, blocks_y=20, rng=rng)


def test_panel_severity_grid():
    grid = panel_severity_grid(
        [panel_anomaly(1, 1, Severity.CRITICAL), panel_anomaly(2, 12, Severity.MINOR)], rows=4, cols=12
    )

    assert grid.shape == (4, 12)
    assert grid[0, 0] == 3
    assert grid[1, 11] == 1
    assert np.count_nonzero(grid) == 2


def test_site_category_grid_full_site(site_simulator):
    site = site_simulator.create_site("site-1")
    grid = site_category_grid(site, [block_anomaly(2, 5, AnomalyType.SOILING)])

    assert grid.shape == (20, 14)
    assert grid[5, 2] == 4
    assert np.nansum(grid) == 4


def test_site_category_grid_with_layout(site_simulator):
    site, blocks, anomalies = site_simulator.generate_site("site-1")
    grid = site_category_grid(site, anomalies, blocks)

    occupied = {(b.grid_y, b.grid_x) for b in blocks}
    assert np.count_nonzero(~np.isnan(grid)) == len(occupied)
    unsurveyed = [b for b in blocks if not b.has_imagery]
    for block in unsurveyed:
        assert grid[block.grid_y, block.grid_x] == NOT_SURVEYED_CODE


def test_render_panel_grid():
    png = GridVisualizer().render_panel_grid([panel_anomaly(3, 4, Severity.MODERATE)], rows=4, cols=12)
    assert png.startswith(PNG_MAGIC)


def test_render_site_grid(site_simulator):
    site, blocks, anomalies = site_simulator.generate_site("site-1")
    png = GridVisualizer(figsize=(6, 4), dpi=50).render_site_grid(site, anomalies, blocks)
    assert png.startswith(PNG_MAGIC)


def test_data_uri():
    uri = GridVisualizer.to_data_uri(PNG_MAGIC)

    assert uri.startswith("data:image/png;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]) == PNG_MAGIC
