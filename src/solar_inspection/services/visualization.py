"""
Grid visualizations for inspection results.

Renders the small-site panel grid (cells coloured by severity) and the
mega-solar block map (cells coloured by the category of the block's anomaly)
as PNG images using matplotlib's non-interactive backend.
"""

import base64
import io
import logging
import threading
from typing import Optional, Sequence, Tuple, Union

import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
from matplotlib.colors import ListedColormap
from matplotlib.figure import Figure
import numpy as np

from ..models import (
    Anomaly,
    AnomalyCategory,
    BlockCell,
    Severity,
    SolarBlock,
    SolarSite,
    ThermalAnomaly,
)
from .panel_simulator import row_label

logger = logging.getLogger(__name__)

SEVERITY_CODES = {Severity.MINOR: 1, Severity.MODERATE: 2, Severity.CRITICAL: 3}
SEVERITY_COLORS = ['#22c55e', '#eab308', '#f97316', '#dc2626']  # normal, minor, moderate, critical

CATEGORY_CODES = {
    AnomalyCategory.HOTSPOT: 1,
    AnomalyCategory.BYPASS_DIODE: 2,
    AnomalyCategory.VEGETATION: 3,
    AnomalyCategory.SOILING: 4,
}
NOT_SURVEYED_CODE = 5
CATEGORY_COLORS = ['#22c55e', '#dc2626', '#ea580c', '#15803d', '#ca8a04', '#6b7280']


def panel_severity_grid(anomalies: Sequence[Anomaly], rows: int, cols: int) -> np.ndarray:
    """
    Build a rows x cols array of severity codes (0 = no anomaly).

    Anomalies without coordinates are ignored.
    """
    grid = np.zeros((rows, cols), dtype=int)
    for anomaly in anomalies:
        if anomaly.coordinates is None:
            continue
        r, c = anomaly.coordinates.row - 1, anomaly.coordinates.col - 1
        if 0 <= r < rows and 0 <= c < cols:
            grid[r, c] = max(grid[r, c], SEVERITY_CODES[anomaly.severity])
    return grid


def site_category_grid(
    site: SolarSite,
    anomalies: Sequence[ThermalAnomaly],
    blocks: Optional[Sequence[Union[SolarBlock, BlockCell]]] = None,
) -> np.ndarray:
    """
    Build a blocks_y x blocks_x array of category codes.

    Cells without a block are NaN; surveyed blocks without an anomaly are 0.
    """
    if blocks is None:
        grid = np.zeros((site.blocks_y, site.blocks_x))
    else:
        grid = np.full((site.blocks_y, site.blocks_x), np.nan)
        for block in blocks:
            grid[block.grid_y, block.grid_x] = 0 if block.has_imagery else NOT_SURVEYED_CODE

    for anomaly in anomalies:
        if 0 <= anomaly.block_y < site.blocks_y and 0 <= anomaly.block_x < site.blocks_x:
            grid[anomaly.block_y, anomaly.block_x] = CATEGORY_CODES[anomaly.category]
    return grid


class GridVisualizer:
    """
    Renders inspection grids to PNG images.

    Figures are built with the object-oriented matplotlib API, never pyplot.
    """

    def __init__(self, figsize: Tuple[float, float] = (10, 6), dpi: int = 100) -> None:
        """
        Initialize the grid visualizer.

        Args:
            figsize: Figure size (width, height) in inches
            dpi: Output resolution
        """
        self.figsize = figsize
        self.dpi = dpi
        self._lock = threading.Lock()

    def _to_png(self, fig: Figure) -> bytes:
        buffer = io.BytesIO()
        fig.savefig(buffer, format='png', bbox_inches='tight', dpi=self.dpi, pad_inches=0.1)
        data = buffer.getvalue()
        buffer.close()
        return data

    def render_panel_grid(
        self,
        anomalies: Sequence[Anomaly],
        rows: int,
        cols: int,
        title: str = "Panel Inspection Grid",
    ) -> bytes:
        """
        Render the small-site panel grid.

        Args:
            anomalies: Anomalies to plot
            rows: Number of panel rows
            cols: Number of panel columns
            title: Figure title

        Returns:
            PNG image bytes
        """
        grid = panel_severity_grid(anomalies, rows, cols)

        with self._lock:
            fig = Figure(figsize=self.figsize)
            ax = fig.add_subplot(111)
            ax.imshow(
                grid,
                cmap=ListedColormap(SEVERITY_COLORS),
                vmin=0,
                vmax=len(SEVERITY_COLORS) - 1,
                aspect='equal',
                interpolation='nearest',
            )

            ax.set_xticks(range(cols))
            ax.set_xticklabels([f"{c:02d}" for c in range(1, cols + 1)], fontsize=8)
            ax.set_yticks(range(rows))
            ax.set_yticklabels([row_label(r) for r in range(1, rows + 1)], fontsize=8)
            ax.set_xticks(np.arange(-0.5, cols, 1), minor=True)
            ax.set_yticks(np.arange(-0.5, rows, 1), minor=True)
            ax.grid(which='minor', color='white', linewidth=1)
            ax.tick_params(which='minor', length=0)

            for anomaly in anomalies:
                if anomaly.coordinates is None:
                    continue
                ax.text(
                    anomaly.coordinates.col - 1,
                    anomaly.coordinates.row - 1,
                    anomaly.panel_id,
                    ha='center',
                    va='center',
                    fontsize=7,
                    color='white',
                )

            ax.set_title(title, fontsize=12, fontweight='bold')
            data = self._to_png(fig)

        logger.debug(f"Rendered {rows}x{cols} panel grid ({len(data)} bytes)")
        return data

    def render_site_grid(
        self,
        site: SolarSite,
        anomalies: Sequence[ThermalAnomaly],
        blocks: Optional[Sequence[Union[SolarBlock, BlockCell]]] = None,
    ) -> bytes:
        """
        Render the mega-solar block map.

        Args:
            site: Site whose grid is drawn
            anomalies: Anomalies to plot
            blocks: Laid-out blocks or their cells (the full grid is drawn if None)

        Returns:
            PNG image bytes
        """
        grid = site_category_grid(site, anomalies, blocks)
        cmap = ListedColormap(CATEGORY_COLORS).with_extremes(bad='white')

        with self._lock:
            fig = Figure(figsize=self.figsize)
            ax = fig.add_subplot(111)
            ax.imshow(
                np.ma.masked_invalid(grid),
                cmap=cmap,
                vmin=0,
                vmax=len(CATEGORY_COLORS) - 1,
                aspect='equal',
                interpolation='nearest',
            )
            ax.set_xlabel('Block X', fontsize=10)
            ax.set_ylabel('Block Y', fontsize=10)
            ax.set_title(f'{site.name} - {len(anomalies)} anomalies', fontsize=12, fontweight='bold')
            data = self._to_png(fig)

        logger.debug(f"Rendered {site.blocks_x}x{site.blocks_y} site grid ({len(data)} bytes)")
        return data

    @staticmethod
    def to_data_uri(png: bytes) -> str:
        """Encode PNG bytes as a base64 data URI for web clients."""
        return f"data:image/png;base64,{base64.b64encode(png).decode('utf-8')}"
