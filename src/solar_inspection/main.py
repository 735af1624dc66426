"""
Main application entry point for the solar inspection engine.

This module wires the simulators, report builders and history stores together
and exposes them through a command-line interface and a web API.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

import numpy as np

from .config import settings
from .models import Anomaly, BlockCell, Inspection, Project, SolarSite, ThermalAnomaly
from .services import (
    MEGA_SOLAR_ANALYSIS_STEPS,
    PANEL_ANALYSIS_STEPS,
    GridVisualizer,
    MegaSolarSimulator,
    PanelArraySimulator,
    ProgressSimulator,
    SQLiteStorage,
    build_analysis_result,
    build_site_report,
    create_analysis_history,
    create_mega_solar_history,
)
from .services.history_store import HistoryItem, KeyValueStorage
from .services.progress import ProgressCallback

logger = logging.getLogger(__name__)


def configure_logging(level: str = None, log_file: Optional[str] = None) -> None:
    """Configure root logging for command-line and server use."""
    handlers = [logging.StreamHandler(sys.stdout)]
    log_file = settings.log_file if log_file is None else log_file
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


class InspectionEngine:
    """
    Main inspection engine that coordinates data generation, reporting and history.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        rng: Optional[np.random.Generator] = None,
        progress_time_scale: float = None,
    ) -> None:
        """
        Initialize the inspection engine.

        Args:
            storage: History storage backend (SQLite file from settings if None)
            rng: Random generator shared by both simulators
            progress_time_scale: Delay multiplier for simulated progress
        """
        logger.info("Initializing Inspection Engine")

        self.rng = rng if rng is not None else np.random.default_rng(settings.random_seed)
        self.panel_simulator = PanelArraySimulator(rng=self.rng)
        self.site_simulator = MegaSolarSimulator(rng=self.rng)
        self.visualizer = GridVisualizer()
        self.progress_time_scale = progress_time_scale

        self.storage = storage if storage is not None else SQLiteStorage()
        self.analysis_history = create_analysis_history(self.storage)
        self.mega_solar_history = create_mega_solar_history(self.storage)

        logger.info("Inspection Engine initialized successfully")

    def _simulate_progress(self, steps, on_progress: Optional[ProgressCallback]) -> None:
        if on_progress is None:
            return
        ProgressSimulator(steps, time_scale=self.progress_time_scale).run(on_progress)

    def run_inspection(
        self,
        panel_rows: Optional[int] = None,
        panel_cols: Optional[int] = None,
        project_name: str = "Demo Solar Array",
        uploaded_files: Optional[Dict[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> HistoryItem:
        """
        Simulate a small-site inspection and record it in the analysis history.

        Args:
            panel_rows: Number of panel rows (settings default if None)
            panel_cols: Number of panel columns (settings default if None)
            project_name: Display name of the project
            uploaded_files: Upload metadata (name, size, count)
            on_progress: Optional callback receiving simulated progress

        Returns:
            The recorded history item
        """
        rows = panel_rows or settings.panel_rows
        cols = panel_cols or settings.panel_cols

        self._simulate_progress(PANEL_ANALYSIS_STEPS, on_progress)

        now = datetime.now()
        stamp = int(now.timestamp() * 1000)
        project = Project(id=f"project-{stamp}", name=project_name, panel_rows=rows, panel_cols=cols)
        inspection = Inspection(
            id=f"inspection-{stamp}",
            project_id=project.id,
            inspection_date=now,
            total_panels=project.total_panels,
        )

        anomalies = self.panel_simulator.generate_anomalies(inspection.id, rows, cols)
        result = build_analysis_result(inspection.id, anomalies)

        item = self.analysis_history.add_to_history({
            "project": project,
            "inspection": inspection,
            "result": result,
            "uploaded_files": uploaded_files or {"name": "demo-upload", "size": 0, "count": 0},
        })
        logger.info(
            f"Inspection {inspection.id} completed: {result.summary.total_anomalies} anomalies, "
            f"{result.summary.estimated_power_loss} W estimated loss"
        )
        return item

    def run_site_inspection(
        self,
        site_id: Optional[str] = None,
        upload_info: Optional[Dict[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> HistoryItem:
        """
        Simulate a mega-solar survey and record it in the mega-solar history.

        Args:
            site_id: Site identifier (derived from the current time if None)
            upload_info: Upload metadata (name, file count, size, folder structure)
            on_progress: Optional callback receiving simulated progress

        Returns:
            The recorded history item
        """
        self._simulate_progress(MEGA_SOLAR_ANALYSIS_STEPS, on_progress)

        site, blocks, anomalies = self.site_simulator.generate_site(site_id)
        report = build_site_report(site, anomalies, blocks)

        item = self.mega_solar_history.add_to_history({
            "site": site.to_dict(),
            "anomalies": anomalies,
            "analyzed_blocks": report.analyzed_blocks,
            "total_blocks": report.total_blocks,
            "summary": report.summary,
            "layout": [block.cell for block in blocks],
            "upload_info": upload_info or {
                "name": "demo-survey",
                "total_files": report.analyzed_blocks * 2,
                "estimated_size": "unknown",
                "structure": {},
            },
        })
        logger.info(
            f"Site inspection of {site.id} completed: {report.summary.total_anomalies} anomalies "
            f"in {report.summary.affected_blocks} blocks"
        )
        return item

    def render_analysis_grid(self, item: HistoryItem) -> bytes:
        """Render the panel grid of a recorded small-site analysis."""
        project = item.data["project"]
        anomalies = [Anomaly.from_dict(a) for a in item.data["result"]["anomalies"]]
        return self.visualizer.render_panel_grid(
            anomalies, project["panel_rows"], project["panel_cols"], title=project["name"]
        )

    def render_site_grid(self, item: HistoryItem) -> bytes:
        """Render the block map of a recorded mega-solar inspection."""
        site = SolarSite.from_dict(item.data["site"])
        anomalies = [ThermalAnomaly.from_dict(a) for a in item.data["anomalies"]]
        # Snapshots without a stored layout are drawn as a fully surveyed grid
        layout = [BlockCell(**cell) for cell in item.data.get("layout", [])] or None
        return self.visualizer.render_site_grid(site, anomalies, layout)


def _print_progress(progress: int, message: str) -> None:
    print(f"[{progress:3d}%] {message}", file=sys.stderr)


def _write_image(path: str, png: bytes) -> None:
    with open(path, "wb") as f:
        f.write(png)
    logger.info(f"Grid image written to {path}")


def main() -> None:
    """Main entry point for the application."""
    parser = argparse.ArgumentParser(description="Solar Inspection Engine - Synthetic Drone Inspection Reports")
    parser.add_argument(
        "--mode",
        choices=["inspect", "mega", "history", "web"],
        default="inspect",
        help="Execution mode: inspect (small array), mega (mega-solar site), "
             "history (list stored reports) or web (Flask server)"
    )
    parser.add_argument("--rows", type=int, default=None, help="Panel rows for inspect mode")
    parser.add_argument("--cols", type=int, default=None, help="Panel columns for inspect mode")
    parser.add_argument("--site-id", default=None, help="Site identifier for mega mode")
    parser.add_argument("--progress", action="store_true", help="Show simulated analysis progress")
    parser.add_argument("--image", default=None, help="Write the rendered grid PNG to this path")
    parser.add_argument(
        "--kind",
        choices=["analysis", "mega-solar"],
        default="analysis",
        help="History to use in history mode"
    )
    parser.add_argument("--clear", action="store_true", help="Clear the selected history in history mode")
    parser.add_argument("--db", default=None, help="History database path")

    args = parser.parse_args()
    configure_logging()

    try:
        engine = InspectionEngine(storage=SQLiteStorage(args.db))
        on_progress = _print_progress if args.progress else None

        if args.mode == "inspect":
            item = engine.run_inspection(args.rows, args.cols, on_progress=on_progress)
            print(json.dumps(item.to_dict(), indent=2, ensure_ascii=False))
            if args.image:
                _write_image(args.image, engine.render_analysis_grid(item))

        elif args.mode == "mega":
            item = engine.run_site_inspection(args.site_id, on_progress=on_progress)
            output = item.to_dict()
            output.pop("anomalies")
            output.pop("layout")
            print(json.dumps(output, indent=2, ensure_ascii=False))
            if args.image:
                _write_image(args.image, engine.render_site_grid(item))

        elif args.mode == "history":
            history = engine.analysis_history if args.kind == "analysis" else engine.mega_solar_history
            if args.clear:
                history.clear_history()
                print(f"Cleared {args.kind} history")
            else:
                for item in history.get_history():
                    print(f"{item.id}  {item.timestamp.isoformat()}")

        elif args.mode == "web":
            from .web import create_app

            app = create_app(engine)
            app.extensions["socketio"].run(
                app,
                host=settings.flask_host,
                port=settings.flask_port,
                debug=settings.flask_debug,
                allow_unsafe_werkzeug=True,
            )
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
