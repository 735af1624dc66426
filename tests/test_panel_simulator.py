"""Tests for small-site anomaly generation."""

import re

import numpy as np
import pytest

from solar_inspection.models import AnomalyType, Severity
from solar_inspection.services.panel_simulator import (
    HOTSPOT_DELTA_RANGES_C,
    POWER_LOSS_RANGES_W,
    PanelArraySimulator,
    panel_id_for,
    row_label,
)
from solar_inspection.services.report_builder import calculate_summary


@pytest.fixture
def simulator(rng):
    return PanelArraySimulator(panel_rows=4, panel_cols=12, rng=rng)


def _runs(simulator, count=50, rows=4, cols=12):
    return [simulator.generate_anomalies(f"inspection-{i}", rows, cols) for i in range(count)]


def test_anomaly_count_within_bounds(simulator):
    for anomalies in _runs(simulator):
        assert 3 <= len(anomalies) <= 10


def test_no_two_anomalies_share_a_panel(simulator):
    for anomalies in _runs(simulator):
        coordinates = [(a.coordinates.row, a.coordinates.col) for a in anomalies]
        assert len(set(coordinates)) == len(coordinates)
        assert len({a.panel_id for a in anomalies}) == len(anomalies)


def test_power_loss_within_severity_range(simulator):
    for anomalies in _runs(simulator):
        for anomaly in anomalies:
            low, high = POWER_LOSS_RANGES_W[anomaly.severity]
            assert low <= anomaly.power_loss_watts < high


def test_temperature_delta_only_on_hotspots(simulator):
    for anomalies in _runs(simulator):
        for anomaly in anomalies:
            if anomaly.anomaly_type in (AnomalyType.HOTSPOT_SINGLE, AnomalyType.HOTSPOT_MULTI):
                low, high = HOTSPOT_DELTA_RANGES_C[anomaly.severity]
                assert anomaly.temperature_delta is not None
                assert low <= anomaly.temperature_delta < high
            else:
                assert anomaly.temperature_delta is None


def test_end_to_end_small_site(simulator):
    anomalies = simulator.generate_anomalies("inspection-e2e", panel_rows=4, panel_cols=12)

    assert 3 <= len(anomalies) <= 10
    for anomaly in anomalies:
        assert re.fullmatch(r"[A-D][0-9]{2}", anomaly.panel_id)
        assert 1 <= int(anomaly.panel_id[1:]) <= 12
        assert anomaly.inspection_id == "inspection-e2e"

    summary = calculate_summary(anomalies)
    assert summary.estimated_power_loss == sum(a.power_loss_watts for a in anomalies)


def test_panel_id_matches_coordinates(simulator):
    for anomaly in simulator.generate_anomalies("inspection-1"):
        assert anomaly.panel_id == panel_id_for(anomaly.coordinates.row, anomaly.coordinates.col)


def test_anomaly_ids_are_sequential(simulator):
    anomalies = simulator.generate_anomalies("inspection-1")
    assert [a.id for a in anomalies] == [f"anomaly-{i}" for i in range(1, len(anomalies) + 1)]


def test_tiny_array_terminates_with_every_panel_used(rng):
    simulator = PanelArraySimulator(rng=rng)
    anomalies = simulator.generate_anomalies("inspection-tiny", panel_rows=1, panel_cols=2)

    assert len(anomalies) == 2
    assert {a.panel_id for a in anomalies} == {"A01", "A02"}


def test_all_labels_are_drawn_eventually(simulator):
    anomalies = [a for run in _runs(simulator, count=100) for a in run]
    assert {a.anomaly_type for a in anomalies} == set(AnomalyType)
    assert {a.severity for a in anomalies} == set(Severity)


def test_same_seed_reproduces_same_anomalies():
    first = PanelArraySimulator(rng=np.random.default_rng(5)).generate_anomalies("x", 4, 12)
    second = PanelArraySimulator(rng=np.random.default_rng(5)).generate_anomalies("x", 4, 12)

    assert [(a.panel_id, a.anomaly_type, a.power_loss_watts) for a in first] == \
        [(a.panel_id, a.anomaly_type, a.power_loss_watts) for a in second]


@pytest.mark.parametrize("rows,cols", [(0, 12), (4, 0), (-1, 5)])
def test_rejects_non_positive_grid(simulator, rows, cols):
    with pytest.raises(ValueError):
        simulator.generate_anomalies("inspection-bad", rows, cols)


@pytest.mark.parametrize("row,label", [(1, "A"), (4, "D"), (26, "Z"), (27, "AA"), (52, "AZ"), (53, "BA")])
def test_row_label(row, label):
    assert row_label(row) == label


def test_panel_id_zero_pads_column():
    assert panel_id_for(2, 7) == "B07"
    assert panel_id_for(28, 112) == "AB112"
