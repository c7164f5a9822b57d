"""
Shared fixtures: every test gets its own data directory so nothing touches ~/.tsheet.
"""

import pytest

from tsheet.TIMETRACK.database import JsonSlot
from tsheet.TIMETRACK.model import Client, Entry, Sheet, Snapshot
from tsheet.TIMETRACK.store import RecordStore


@pytest.fixture(autouse=True)
def tsheet_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("TSHEET_HOME", str(home))
    return home


@pytest.fixture
def slot(tmp_path):
    return JsonSlot(tmp_path / "store.json")


@pytest.fixture
def empty_store(slot):
    """A store with no records at all (not the seeded starter data)."""
    return RecordStore(Snapshot(), slot)


@pytest.fixture
def store(empty_store):
    """One client with one two-week sheet."""
    client = empty_store.add_client("Acme Church")
    empty_store.add_sheet(client.id, "Pat Doe", "2026-02-16", "2026-03-01")
    return empty_store


def make_entry(entry_id, **fields):
    defaults = dict(client_id="c1", sheet_id="s1", work_date="2026-02-16",
                    time_in="09:00", time_out="17:00", break_hours=0, total_hours=8.0,
                    notes="", created_at="2026-02-16T10:00:00.000Z",
                    updated_at="2026-02-16T10:00:00.000Z")
    defaults.update(fields)
    return Entry(id=entry_id, **defaults)


def make_snapshot(clients=(), sheets=(), entries=()):
    return Snapshot(
        clients=[c if isinstance(c, Client) else Client(**c) for c in clients],
        sheets=[s if isinstance(s, Sheet) else Sheet(**s) for s in sheets],
        entries=list(entries),
    )
