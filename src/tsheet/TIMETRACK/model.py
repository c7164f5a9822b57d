# timetrack/model.py
"""Record types for the timesheet snapshot.

Attributes are snake_case; ``to_dict``/``from_dict`` speak the camelCase
JSON document. ``from_dict`` is lenient on purpose: missing keys take the
field default, values are not coerced, and unknown keys ride along in
``extra`` so a record read from a foreign document is written back as-is.
"""
import copy
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Tuple

SYNC_METHODS = ("PUT", "POST")


def new_id() -> str:
    return uuid.uuid4().hex


def _wire_names(cls) -> List[Tuple[str, str]]:
    return [(f.name, f.metadata["key"]) for f in fields(cls) if "key" in f.metadata]


def _key(name: str) -> Dict[str, str]:
    return {"key": name}


class _Record:
    """Shared dict conversion for the record dataclasses."""

    extra: Dict[str, Any]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        names = _wire_names(cls)
        known = {key for _, key in names}
        kwargs = {attr: copy.deepcopy(data[key]) for attr, key in names if key in data}
        kwargs["extra"] = {k: copy.deepcopy(v) for k, v in data.items() if k not in known}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = copy.deepcopy(self.extra)
        for attr, key in _wire_names(type(self)):
            data[key] = copy.deepcopy(getattr(self, attr))
        return data


@dataclass
class Client(_Record):
    id: str = field(default="", metadata=_key("id"))
    name: str = field(default="", metadata=_key("name"))
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class Sheet(_Record):
    """A client/person pay period; dates are ISO ``YYYY-MM-DD`` strings."""
    id: str = field(default="", metadata=_key("id"))
    client_id: str = field(default="", metadata=_key("clientId"))
    person_name: str = field(default="", metadata=_key("personName"))
    period_start: str = field(default="", metadata=_key("periodStart"))
    period_end: str = field(default="", metadata=_key("periodEnd"))
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class Entry(_Record):
    """One logged work interval.

    ``client_id`` duplicates the owning sheet's client so entries stay
    attributable after their sheet is deleted.
    """
    id: str = field(default="", metadata=_key("id"))
    client_id: str = field(default="", metadata=_key("clientId"))
    sheet_id: str = field(default="", metadata=_key("sheetId"))
    work_date: str = field(default="", metadata=_key("workDate"))
    time_in: str = field(default="", metadata=_key("timeIn"))
    time_out: str = field(default="", metadata=_key("timeOut"))
    break_hours: Any = field(default=0, metadata=_key("breakHours"))
    total_hours: Any = field(default=0, metadata=_key("totalHours"))
    notes: str = field(default="", metadata=_key("notes"))
    created_at: str = field(default="", metadata=_key("createdAt"))
    updated_at: str = field(default="", metadata=_key("updatedAt"))
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    def sort_key(self) -> Tuple[str, str, str, str]:
        # plain string order; ISO dates and HH:MM sort correctly this way
        return (
            as_text(self.work_date),
            as_text(self.time_in),
            as_text(self.time_out),
            as_text(self.created_at),
        )


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass
class SyncConfig(_Record):
    read_url: str = field(default="", metadata=_key("readUrl"))
    write_url: str = field(default="", metadata=_key("writeUrl"))
    method: str = field(default="PUT", metadata=_key("method"))
    bearer_token: str = field(default="", metadata=_key("bearerToken"))
    last_sync_at: str = field(default="", metadata=_key("lastSyncAt"))
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def write_method(self) -> str:
        return "POST" if self.method == "POST" else "PUT"


@dataclass
class Settings:
    sync: SyncConfig = field(default_factory=SyncConfig)
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        raw_sync = data.get("sync")
        sync = SyncConfig.from_dict(raw_sync) if isinstance(raw_sync, Mapping) else SyncConfig()
        extra = {k: copy.deepcopy(v) for k, v in data.items() if k != "sync"}
        return cls(sync=sync, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        data = copy.deepcopy(self.extra)
        data["sync"] = self.sync.to_dict()
        return data


@dataclass
class Snapshot:
    """Everything the store owns at one point in time."""
    clients: List[Client] = field(default_factory=list)
    sheets: List[Sheet] = field(default_factory=list)
    entries: List[Entry] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clients": [c.to_dict() for c in self.clients],
            "sheets": [s.to_dict() for s in self.sheets],
            "entries": [e.to_dict() for e in self.entries],
            "settings": self.settings.to_dict(),
        }

    def copy(self) -> "Snapshot":
        return copy.deepcopy(self)


def find_by_id(records, record_id: Optional[str]):
    for record in records:
        if record.id == record_id:
            return record
    return None


def seed_snapshot() -> Snapshot:
    client_id = new_id()
    return Snapshot(
        clients=[Client(id=client_id, name="First Baptist Church")],
        sheets=[Sheet(
            id=new_id(),
            client_id=client_id,
            person_name="Name Here",
            period_start="2026-02-16",
            period_end="2026-03-01",
        )],
        entries=[],
        settings=Settings(),
    )
