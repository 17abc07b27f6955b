"""Bounded, newest-first cache of recently viewed prediction ids"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from threading import RLock
from app.core.storage import LocalStorage
from app.utils.exceptions import ApiError, ConnectivityError
from app.utils.logger import logger

STORAGE_KEY = "predictions"
HISTORY_ENDPOINT = "/api/predictions/history"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def looks_generated(prediction_id: str) -> bool:
    """True when the id parses as a UUID, i.e. it was not typed by the user"""
    try:
        uuid.UUID(str(prediction_id))
        return True
    except ValueError:
        return False


def make_entry(prediction_id: str, rock_type: str = "", custom_id: Optional[bool] = None,
               timestamp: Optional[str] = None) -> Dict[str, Any]:
    """Build a recents entry in the stored `{id, timestamp, rockType, customId}` shape"""
    if custom_id is None:
        custom_id = not looks_generated(prediction_id)
    return {
        "id": str(prediction_id),
        "timestamp": timestamp or _now_iso(),
        "rockType": rock_type or "",
        "customId": bool(custom_id)
    }


def entry_from_record(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Summarise a server history record as a recents entry"""
    if not isinstance(record, dict):
        return None
    if isinstance(record.get("result"), dict):
        record = record["result"]
    input_data = record.get("input_data") if isinstance(record.get("input_data"), dict) else record
    prediction_id = record.get("id") or input_data.get("id")
    if not prediction_id:
        return None
    timestamp = record.get("timestamp") or record.get("created_at") or input_data.get("timestamp")
    return make_entry(
        str(prediction_id),
        rock_type=str(input_data.get("Rock_Type") or ""),
        timestamp=str(timestamp) if timestamp else None
    )


class RecentsCache:
    """
    Client-local list of recently viewed predictions.

    Features:
    - Newest first, capped at `max_size` entries
    - Pushing a known id moves it to the front instead of duplicating it
    - Best-effort reconciliation from the server history endpoint

    The cache is not authoritative and may drift from the server.
    """

    def __init__(self, storage: LocalStorage, max_size: int = 10):
        self.storage = storage
        self.max_size = max_size
        self._lock = RLock()

    def _load(self) -> List[Dict[str, Any]]:
        entries = self.storage.get_item(STORAGE_KEY, [])
        if not isinstance(entries, list):
            logger.warning("Discarding malformed recents cache")
            return []
        return [e for e in entries if isinstance(e, dict) and e.get("id")]

    def _store(self, entries: List[Dict[str, Any]]) -> None:
        self.storage.set_item(STORAGE_KEY, entries[:self.max_size])

    def push(self, entry: Dict[str, Any]) -> None:
        """Insert an entry at the front, evicting the oldest beyond the cap"""
        with self._lock:
            entries = [e for e in self._load() if e["id"] != entry["id"]]
            entries.insert(0, entry)
            self._store(entries)

    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._load()[:self.max_size]

    def get(self, prediction_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for entry in self._load():
                if entry["id"] == prediction_id:
                    return entry
            return None

    def remove(self, prediction_id: str) -> bool:
        with self._lock:
            entries = self._load()
            kept = [e for e in entries if e["id"] != prediction_id]
            if len(kept) == len(entries):
                return False
            self._store(kept)
            return True

    def update(self, prediction_id: str, **fields) -> bool:
        """Modify an existing entry in place; unknown ids are left alone"""
        with self._lock:
            entries = self._load()
            for entry in entries:
                if entry["id"] == prediction_id:
                    entry.update(fields)
                    self._store(entries)
                    return True
            return False

    def replace(self, entries: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._store(list(entries))

    def clear(self) -> None:
        with self._lock:
            self.storage.remove_item(STORAGE_KEY)

    async def sync_from_server(self, client) -> bool:
        """
        Overwrite the cache from the server history.

        Returns:
            True if the cache was replaced, False if the local copy was kept
        """
        try:
            records = await client.get(HISTORY_ENDPOINT)
        except (ApiError, ConnectivityError) as e:
            logger.info(f"History fetch failed, keeping local recents: {str(e)}")
            return False

        if not isinstance(records, list) or not records:
            logger.debug("History endpoint returned nothing, keeping local recents")
            return False

        entries = [entry for entry in (entry_from_record(r) for r in records) if entry]
        if not entries:
            return False

        # Server order is kept unless every record carries its own timestamp
        if all(isinstance(r, dict) and (r.get("timestamp") or r.get("created_at")) for r in records):
            entries.sort(key=lambda e: e["timestamp"], reverse=True)
        self.replace(entries)
        logger.info(f"Recents cache replaced from server history ({len(entries)} records)")
        return True
