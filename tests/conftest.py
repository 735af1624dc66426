"""Shared fixtures for the solar inspection test suite."""

import numpy as np
import pytest

from solar_inspection.main import InspectionEngine
from solar_inspection.services.history_store import InMemoryStorage, SQLiteStorage


@pytest.fixture
def rng():
    return np.random.default_rng(20240601)


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def sqlite_storage(tmp_path):
    return SQLiteStorage(str(tmp_path / "history.db"))


@pytest.fixture
def engine(memory_storage, rng):
    return InspectionEngine(storage=memory_storage, rng=rng, progress_time_scale=0)
