"""
History storage for generated inspection reports.

Each history is a newest-first JSON array of report snapshots kept under one key
of a key-value storage backend and capped at a fixed length. Storage and parse
failures are logged and degrade to an empty history; they are never raised to
callers.
"""

import json
import logging
import sqlite3
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from ..config import settings
from ..models import make_json_safe
from ..models.serialization import parse_timestamp

logger = logging.getLogger(__name__)

ANALYSIS_HISTORY_KEY = "solar-panel-analysis-history"
MEGA_SOLAR_HISTORY_KEY = "mega-solar-inspection-history"

# Item metadata written alongside the payload of every stored entry
RESERVED_KEYS = frozenset({"id", "timestamp"})


class StorageError(Exception):
    """Raised by storage backends when the underlying store cannot be accessed."""


class KeyValueStorage(Protocol):
    """Text key-value store backing a history repository."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    """Process-local key-value storage."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SQLiteStorage:
    """
    Key-value storage persisted in a SQLite database file.
    """

    def __init__(self, db_path: str = None) -> None:
        """
        Initialize the SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path or settings.history_db_path
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the SQLite database schema."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS key_value_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize history database {self.db_path}: {e}") from e

        logger.info(f"History storage ready at {self.db_path}")

    def get_item(self, key: str) -> Optional[str]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM key_value_store WHERE key = ?", (key,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read {key!r}: {e}") from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT OR REPLACE INTO key_value_store (key, value, last_updated)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                """, (key, value))
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM key_value_store WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot remove {key!r}: {e}") from e


@dataclass
class HistoryItem:
    """
    A stored report snapshot.

    Attributes:
        id: Unique item identifier
        timestamp: When the snapshot was recorded
        data: JSON-safe snapshot payload (site/project, report, upload metadata)
    """
    id: str
    timestamp: datetime
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        item = make_json_safe(self.data)
        item["id"] = self.id
        item["timestamp"] = self.timestamp.isoformat()
        return item

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "HistoryItem":
        data = dict(entry)
        item_id = data.pop("id")
        timestamp = parse_timestamp(data.pop("timestamp"))
        return cls(id=item_id, timestamp=timestamp, data=data)


class HistoryRepository:
    """
    Capped, newest-first history of report snapshots.

    All operations read and rewrite the whole list under a single storage key;
    writers holding the same repository are serialized.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        max_items: int,
        id_prefix: str,
    ) -> None:
        """
        Initialize the history repository.

        Args:
            storage: Backend holding the serialized history
            key: Storage key of the history list
            max_items: Maximum number of snapshots kept
            id_prefix: Prefix of generated item identifiers
        """
        if max_items <= 0:
            raise ValueError("History cap must be positive")

        self.storage = storage
        self.key = key
        self.max_items = max_items
        self.id_prefix = id_prefix
        self._lock = threading.Lock()

    def _new_id(self) -> str:
        return f"{self.id_prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"

    def _write(self, items: List[HistoryItem]) -> None:
        self.storage.set_item(self.key, json.dumps([item.to_dict() for item in items]))

    def get_history(self) -> List[HistoryItem]:
        """
        Load the stored history.

        Returns:
            Snapshots newest first, or an empty list if nothing valid is stored
        """
        try:
            stored = self.storage.get_item(self.key)
        except StorageError as e:
            logger.error(f"Failed to load history {self.key}: {e}")
            return []

        if not stored:
            return []

        try:
            entries = json.loads(stored)
        except ValueError as e:
            logger.error(f"Failed to parse history {self.key}: {e}")
            return []

        if not isinstance(entries, list):
            logger.error(f"History {self.key} is not a list, ignoring stored value")
            return []

        items = []
        for entry in entries:
            try:
                items.append(HistoryItem.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed entry in history {self.key}: {e}")
        return items

    def add_to_history(self, data: Dict[str, Any]) -> HistoryItem:
        """
        Record a new snapshot at the front of the history.

        Args:
            data: Snapshot payload; model objects are converted to JSON-safe values

        Returns:
            The recorded HistoryItem

        Raises:
            ValueError: If the payload uses a key reserved for item metadata
        """
        reserved = RESERVED_KEYS.intersection(data)
        if reserved:
            raise ValueError(f"Snapshot payload cannot use reserved keys: {sorted(reserved)}")

        item = HistoryItem(id=self._new_id(), timestamp=datetime.now(), data=make_json_safe(data))

        with self._lock:
            history = [item] + self.get_history()

            evicted = len(history) - self.max_items
            if evicted > 0:
                logger.debug(f"Evicting {evicted} oldest entries from history {self.key}")

            try:
                self._write(history[:self.max_items])
            except StorageError as e:
                logger.error(f"Failed to save to history {self.key}: {e}")
        return item

    def get_history_item(self, item_id: str) -> Optional[HistoryItem]:
        return next((item for item in self.get_history() if item.id == item_id), None)

    def delete_history_item(self, item_id: str) -> bool:
        """
        Delete one snapshot.

        Args:
            item_id: Identifier of the snapshot to delete

        Returns:
            True if a snapshot was removed
        """
        with self._lock:
            history = self.get_history()
            remaining = [item for item in history if item.id != item_id]
            if len(remaining) == len(history):
                return False

            try:
                self._write(remaining)
            except StorageError as e:
                logger.error(f"Failed to delete history item {item_id}: {e}")
                return False
        return True

    def clear_history(self) -> None:
        with self._lock:
            try:
                self.storage.remove_item(self.key)
            except StorageError as e:
                logger.error(f"Failed to clear history {self.key}: {e}")


def create_analysis_history(storage: KeyValueStorage, max_items: int = None) -> HistoryRepository:
    """History of small-site analyses."""
    return HistoryRepository(
        storage,
        key=ANALYSIS_HISTORY_KEY,
        max_items=max_items or settings.analysis_history_max_items,
        id_prefix="analysis",
    )


def create_mega_solar_history(storage: KeyValueStorage, max_items: int = None) -> HistoryRepository:
    """History of mega-solar site inspections."""
    return HistoryRepository(
        storage,
        key=MEGA_SOLAR_HISTORY_KEY,
        max_items=max_items or settings.mega_solar_history_max_items,
        id_prefix="mega-solar",
    )
