"""Tests for the inspection engine."""

import logging
import re
import sys

import numpy as np

from solar_inspection.main import InspectionEngine, configure_logging
from solar_inspection.models import BlockCell, SolarSite
from solar_inspection.services.visualization import NOT_SURVEYED_CODE, site_category_grid


def test_run_inspection_records_history(engine):
    item = engine.run_inspection(panel_rows=4, panel_cols=12, project_name="Rooftop")

    assert item.id.startswith("analysis-")
    assert set(item.data) == {"project", "inspection", "result", "uploaded_files"}
    assert item.data["project"]["name"] == "Rooftop"
    assert item.data["inspection"]["total_panels"] == 48

    anomalies = item.data["result"]["anomalies"]
    assert 3 <= len(anomalies) <= 10
    assert all(re.fullmatch(r"[A-D][0-9]{2}", a["panel_id"]) for a in anomalies)
    assert item.data["result"]["summary"]["total_anomalies"] == len(anomalies)
    assert engine.analysis_history.get_history()[0].id == item.id


def test_run_inspection_defaults_grid(engine):
    item = engine.run_inspection()
    assert item.data["inspection"]["total_panels"] == 48


def test_run_inspection_reports_progress(engine):
    events = []
    engine.run_inspection(on_progress=lambda progress, message: events.append(progress))

    assert len(events) == 8
    assert events[-1] == 100


def test_run_site_inspection_records_history(engine):
    events = []
    item = engine.run_site_inspection("site-42", on_progress=lambda p, m: events.append(p))

    assert item.id.startswith("mega-solar-")
    assert set(item.data) == {
        "site", "anomalies", "analyzed_blocks", "total_blocks", "summary", "layout", "upload_info",
    }
    assert item.data["site"]["id"] == "site-42"
    assert item.data["summary"]["total_anomalies"] == len(item.data["anomalies"])
    assert item.data["analyzed_blocks"] <= item.data["total_blocks"]
    assert len(events) == 11
    assert engine.mega_solar_history.get_history_item(item.id) is not None


def test_render_from_history(engine):
    analysis = engine.analysis_history.get_history_item(engine.run_inspection().id)
    site = engine.mega_solar_history.get_history_item(engine.run_site_inspection().id)

    assert engine.render_analysis_grid(analysis).startswith(b"\x89PNG")
    assert engine.render_site_grid(site).startswith(b"\x89PNG")


def test_default_storage_uses_settings_path(tmp_path, monkeypatch, rng):
    from solar_inspection.config import settings

    monkeypatch.setattr(settings, "history_db_path", str(tmp_path / "engine.db"))
    engine = InspectionEngine(rng=rng, progress_time_scale=0)

    assert engine.storage.db_path == str(tmp_path / "engine.db")
    assert (tmp_path / "engine.db").exists()


def test_site_snapshot_keeps_block_layout(engine):
    item = engine.run_site_inspection("site-43")
    layout = item.data["layout"]

    assert layout
    assert set(layout[0]) == {"grid_x", "grid_y", "has_imagery"}
    assert sum(cell["has_imagery"] for cell in layout) == item.data["analyzed_blocks"]
    assert len(layout) == item.data["total_blocks"]


def test_site_grid_from_history_uses_stored_layout(engine, monkeypatch):
    stored = engine.mega_solar_history.get_history_item(engine.run_site_inspection().id)
    calls = []
    monkeypatch.setattr(
        engine.visualizer, "render_site_grid",
        lambda site, anomalies, blocks=None: calls.append(blocks) or b"\x89PNG",
    )

    engine.render_site_grid(stored)

    cells = calls[0]
    assert all(isinstance(cell, BlockCell) for cell in cells)
    assert len(cells) == len(stored.data["layout"])

    site = SolarSite.from_dict(stored.data["site"])
    grid = site_category_grid(site, [], cells)
    assert np.isnan(grid).any()
    assert (grid == NOT_SURVEYED_CODE).sum() == sum(not cell.has_imagery for cell in cells)


def test_site_grid_without_stored_layout(engine, monkeypatch):
    stored = engine.mega_solar_history.get_history_item(engine.run_site_inspection().id)
    del stored.data["layout"]
    calls = []
    monkeypatch.setattr(
        engine.visualizer, "render_site_grid",
        lambda site, anomalies, blocks=None: calls.append(blocks) or b"\x89PNG",
    )

    engine.render_site_grid(stored)
    assert calls == [None]


def test_logging_goes_to_stdout(monkeypatch):
    captured = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))

    configure_logging(level="debug", log_file="")

    assert captured["level"] == logging.DEBUG
    [handler] = captured["handlers"]
    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stdout
