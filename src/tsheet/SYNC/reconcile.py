# sync/reconcile.py
"""Import/export and snapshot reconciliation.

``sanitize`` turns an untrusted JSON value into a :class:`Snapshot`;
``merge`` combines two snapshots by record id with the incoming side
winning. Neither function mutates its inputs.
"""
import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from tsheet.config import APP_NAME, FORMAT_VERSION
from tsheet.errors import MalformedDocument
from tsheet.TIMETRACK.model import (Client, Entry, Settings, Sheet, Snapshot,
                                    SyncConfig)
from tsheet.TIMETRACK.timecalc import now_iso

IMPORT_MODES = ("merge", "replace")


def _records(raw: Any, record_cls) -> list:
    if not isinstance(raw, list):
        return []
    # a non-object item has no fields to carry, so it cannot become a record
    return [record_cls.from_dict(item) for item in raw if isinstance(item, Mapping)]


def sanitize(raw: Any) -> Snapshot:
    """Validate the document root and default-fill what is missing.

    Only a non-object root is fatal. Collections that are not lists become
    empty, ``settings`` that is not an object becomes ``{}``, and every
    missing ``settings.sync`` field gets its default. Individual records are
    not checked.
    """
    if not isinstance(raw, Mapping):
        raise MalformedDocument("JSON is not an object.")
    raw_settings = raw.get("settings")
    settings = Settings.from_dict(raw_settings) if isinstance(raw_settings, Mapping) else Settings()
    return Snapshot(
        clients=_records(raw.get("clients"), Client),
        sheets=_records(raw.get("sheets"), Sheet),
        entries=_records(raw.get("entries"), Entry),
        settings=settings,
    )


def loads_document(text: str) -> Snapshot:
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedDocument(f"Not valid JSON: {e}") from e
    return sanitize(raw)


def _identity(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        # ids from foreign documents may be lists or objects
        return ("unhashable", json.dumps(value, sort_keys=True, default=str))
    return value


def merge_by_id(current: Iterable, incoming: Iterable) -> list:
    """Union keyed by id; on a shared id the incoming record replaces the current one."""
    merged: Dict[Any, Any] = {}
    for record in current:
        merged[_identity(record.id)] = record
    for record in incoming:
        # dict keeps the first-seen position when a key is overwritten
        merged[_identity(record.id)] = record
    return list(merged.values())


def merge_settings(current: Settings, incoming: Settings) -> Settings:
    extra = dict(current.extra)
    extra.update(incoming.extra)
    # sync is replaced as a whole, never field by field
    sync = SyncConfig.from_dict(incoming.sync.to_dict())
    return Settings(sync=sync, extra=extra)


def merge(current: Snapshot, incoming: Snapshot) -> Snapshot:
    """Combine two snapshots; ``incoming`` is authoritative per id.

    Whole records are replaced, never merged field by field, and
    ``updatedAt`` plays no part, so ``merge(a, b)`` and ``merge(b, a)``
    differ whenever both sides changed the same id.
    """
    current = current.copy()
    incoming = incoming.copy()
    return Snapshot(
        clients=merge_by_id(current.clients, incoming.clients),
        sheets=merge_by_id(current.sheets, incoming.sheets),
        entries=merge_by_id(current.entries, incoming.entries),
        settings=merge_settings(current.settings, incoming.settings),
    )


def apply_import(current: Snapshot, incoming: Snapshot, mode: str = "merge") -> Snapshot:
    if mode == "replace":
        return incoming.copy()
    if mode == "merge":
        return merge(current, incoming)
    raise ValueError(f"Unknown import mode '{mode}'. Use one of: {', '.join(IMPORT_MODES)}.")


def export_meta(exported_at: Optional[str] = None) -> Dict[str, Any]:
    return {
        "exportedAt": exported_at or now_iso(),
        "app": APP_NAME,
        "version": FORMAT_VERSION,
    }


def export_payload(snapshot: Snapshot, exported_at: Optional[str] = None) -> Dict[str, Any]:
    """The full snapshot plus a ``meta`` stamp."""
    payload = {"meta": export_meta(exported_at)}
    payload.update(snapshot.to_dict())
    return payload


def client_export_payload(snapshot: Snapshot, client_id: str,
                          exported_at: Optional[str] = None) -> Dict[str, Any]:
    """Export limited to one client, its sheets and its entries."""
    entries: List[Entry] = sorted(
        (e for e in snapshot.entries if e.client_id == client_id), key=Entry.sort_key
    )
    return {
        "meta": export_meta(exported_at),
        "clients": [c.to_dict() for c in snapshot.clients if c.id == client_id],
        "sheets": [s.to_dict() for s in snapshot.sheets if s.client_id == client_id],
        "entries": [e.to_dict() for e in entries],
        "settings": snapshot.settings.to_dict(),
    }


def dumps_document(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2)


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"timesheet_export_{now.strftime('%Y-%m-%dT%H-%M-%S')}.json"


def client_export_filename(client_name: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    safe_name = str(client_name).replace(" ", "_")
    return f"timesheet_{safe_name}_{now.strftime('%Y-%m-%d')}.json"
