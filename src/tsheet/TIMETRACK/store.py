# timetrack/store.py
"""The record store: owns the snapshot and writes it through on every change."""
from dataclasses import dataclass
from typing import Any, List, Optional

from tsheet.errors import InvalidTimeInput, RecordNotFound, ValidationError
from tsheet.logging_config import get_store_logger
from tsheet.SYNC.reconcile import sanitize
from tsheet.TIMETRACK.database import JsonSlot
from tsheet.TIMETRACK.model import (SYNC_METHODS, Client, Entry, Sheet,
                                    Snapshot, as_text, find_by_id, new_id,
                                    seed_snapshot)
from tsheet.TIMETRACK.timecalc import (coerce_hours, entry_total, in_range,
                                       is_iso_date, now_iso, parse_clock_time,
                                       round_hours)

logger = get_store_logger()

DEFAULT_PERSON_NAME = "Name Here"
UNKNOWN_CLIENT = "(Unknown client)"


@dataclass(frozen=True)
class SheetTotals:
    count: int
    sum_hours: float


class RecordStore:
    """Repository over one snapshot.

    Build it with :meth:`open` (load the slot, or seed it when empty) and
    finish with :meth:`close`. Every mutation touches a single record and
    is persisted before the method returns.
    """

    def __init__(self, snapshot: Snapshot, slot: Optional[JsonSlot] = None):
        self.snapshot = snapshot
        self.slot = slot

    @classmethod
    def open(cls, slot: Optional[JsonSlot] = None) -> "RecordStore":
        slot = slot or JsonSlot()
        raw = slot.read()
        if raw is None:
            store = cls(seed_snapshot(), slot)
            store.save()
            logger.info(f"Seeded a new timesheet store at {slot.path}")
            return store
        return cls(sanitize(raw), slot)

    def save(self) -> None:
        if self.slot is not None:
            self.slot.write(self.snapshot.to_dict())

    def close(self) -> None:
        self.save()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Lookups ---
    @property
    def clients(self) -> List[Client]:
        return self.snapshot.clients

    @property
    def sheets(self) -> List[Sheet]:
        return self.snapshot.sheets

    @property
    def entries(self) -> List[Entry]:
        return self.snapshot.entries

    def get_client(self, client_id: str) -> Optional[Client]:
        return find_by_id(self.clients, client_id)

    def get_sheet(self, sheet_id: str) -> Optional[Sheet]:
        return find_by_id(self.sheets, sheet_id)

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        return find_by_id(self.entries, entry_id)

    def require_client(self, client_id: str) -> Client:
        client = self.get_client(client_id)
        if client is None:
            raise RecordNotFound("Client", client_id)
        return client

    def require_sheet(self, sheet_id: str) -> Sheet:
        sheet = self.get_sheet(sheet_id)
        if sheet is None:
            raise RecordNotFound("Sheet", sheet_id)
        return sheet

    def require_entry(self, entry_id: str) -> Entry:
        entry = self.get_entry(entry_id)
        if entry is None:
            raise RecordNotFound("Entry", entry_id)
        return entry

    def client_name(self, client_id: str) -> str:
        client = self.get_client(client_id)
        return client.name if client else UNKNOWN_CLIENT

    # --- Aggregates ---
    def sheet_totals(self, sheet: Sheet) -> SheetTotals:
        matching = [e for e in self.entries if e.sheet_id == sheet.id]
        total = sum(coerce_hours(e.total_hours) for e in matching)
        return SheetTotals(count=len(matching), sum_hours=round_hours(total))

    def client_entries(self, client_id: str) -> List[Entry]:
        return sorted((e for e in self.entries if e.client_id == client_id), key=Entry.sort_key)

    def sheet_entries(self, sheet_id: str) -> List[Entry]:
        return sorted((e for e in self.entries if e.sheet_id == sheet_id), key=Entry.sort_key)

    def sheets_by_recency(self, client_id: Optional[str] = None) -> List[Sheet]:
        sheets = [s for s in self.sheets if client_id is None or s.client_id == client_id]
        # sorted() is stable, so equal start dates keep their stored order
        return sorted(sheets, key=lambda s: as_text(s.period_start), reverse=True)

    def current_sheet_for_client(self, client_id: str) -> Optional[Sheet]:
        best = None
        for sheet in self.sheets:
            if sheet.client_id != client_id:
                continue
            if best is None or as_text(sheet.period_start) > as_text(best.period_start):
                best = sheet
        return best

    def entries_in_period(self, client_id: str, sheet: Sheet) -> List[Entry]:
        return [
            e for e in self.client_entries(client_id)
            if in_range(e.work_date, sheet.period_start, sheet.period_end)
        ]

    @staticmethod
    def search_entries(entries: List[Entry], term: Optional[str]) -> List[Entry]:
        term = (term or "").strip().lower()
        if not term:
            return list(entries)
        return [
            e for e in entries
            if term in as_text(e.work_date)
            or term in as_text(e.notes).lower()
            or term in as_text(e.time_in)
            or term in as_text(e.time_out)
        ]

    def orphaned_entries(self) -> List[Entry]:
        """Entries whose sheet no longer exists. Reported, never repaired."""
        sheet_ids = {s.id for s in self.sheets}
        return sorted((e for e in self.entries if e.sheet_id not in sheet_ids), key=Entry.sort_key)

    def last_person_name(self) -> str:
        sheets = self.sheets_by_recency()
        if sheets and isinstance(sheets[0].person_name, str) and sheets[0].person_name.strip():
            return sheets[0].person_name.strip()
        return DEFAULT_PERSON_NAME

    def counts(self) -> dict:
        return {
            "clients": len(self.clients),
            "sheets": len(self.sheets),
            "entries": len(self.entries),
        }

    # --- Client Operations ---
    def add_client(self, name: str) -> Client:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Enter a client name.")
        client = Client(id=new_id(), name=name)
        self.clients.append(client)
        self.save()
        logger.debug(f"Added client {client.id} ({name})")
        return client

    def rename_client(self, client_id: str, name: str) -> Client:
        client = self.require_client(client_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Enter a client name.")
        client.name = name
        self.save()
        return client

    # --- Sheet Operations ---
    @staticmethod
    def _check_period(period_start: str, period_end: str) -> None:
        if not is_iso_date(period_start) or not is_iso_date(period_end):
            raise InvalidTimeInput("Choose a start and end date (YYYY-MM-DD).")
        if period_end < period_start:
            raise InvalidTimeInput("Period end must be on/after period start.")

    def add_sheet(self, client_id: str, person_name: Optional[str],
                  period_start: str, period_end: str) -> Sheet:
        self.require_client(client_id)
        self._check_period(period_start, period_end)
        sheet = Sheet(
            id=new_id(),
            client_id=client_id,
            person_name=(person_name or "").strip() or DEFAULT_PERSON_NAME,
            period_start=period_start,
            period_end=period_end,
        )
        self.sheets.append(sheet)
        self.save()
        logger.debug(f"Added sheet {sheet.id} for client {client_id} ({period_start} -> {period_end})")
        return sheet

    def update_sheet(self, sheet_id: str, person_name: Optional[str] = None,
                     period_start: Optional[str] = None,
                     period_end: Optional[str] = None) -> Sheet:
        sheet = self.require_sheet(sheet_id)
        new_start = period_start if period_start is not None else sheet.period_start
        new_end = period_end if period_end is not None else sheet.period_end
        self._check_period(new_start, new_end)
        # entries outside the new period are left alone
        if person_name is not None:
            sheet.person_name = person_name.strip() or DEFAULT_PERSON_NAME
        sheet.period_start = new_start
        sheet.period_end = new_end
        self.save()
        return sheet

    def delete_sheet(self, sheet_id: str, cascade: bool) -> int:
        """Remove a sheet; with ``cascade`` its entries go too.

        Returns how many entries were removed (always 0 for sheet-only).
        """
        self.require_sheet(sheet_id)
        self.snapshot.sheets = [s for s in self.sheets if s.id != sheet_id]
        removed = 0
        if cascade:
            kept = [e for e in self.entries if e.sheet_id != sheet_id]
            removed = len(self.entries) - len(kept)
            self.snapshot.entries = kept
        self.save()
        logger.info(f"Deleted sheet {sheet_id} ({'cascade' if cascade else 'sheet only'}, {removed} entries removed)")
        return removed

    # --- Entry Operations ---
    @staticmethod
    def _compute_total(sheet: Optional[Sheet], work_date: str, time_in: str,
                       time_out: str, break_hours: Any) -> float:
        if parse_clock_time(time_in) is None or parse_clock_time(time_out) is None:
            raise InvalidTimeInput("Please fix the time fields (HH:MM, 24-hour).")
        if not is_iso_date(work_date):
            raise InvalidTimeInput(f"Invalid work date: '{work_date}'.")
        if sheet is not None and not in_range(work_date, sheet.period_start, sheet.period_end):
            raise InvalidTimeInput(
                f"Date must be within {sheet.period_start} to {sheet.period_end}."
            )
        return entry_total(time_in, time_out, break_hours)

    def add_entry(self, sheet_id: str, work_date: str, time_in: str, time_out: str,
                  break_hours: Any = 0, notes: str = "") -> Entry:
        sheet = self.require_sheet(sheet_id)
        total = self._compute_total(sheet, work_date, time_in, time_out, break_hours)
        now = now_iso()
        entry = Entry(
            id=new_id(),
            client_id=sheet.client_id,
            sheet_id=sheet.id,
            work_date=work_date,
            time_in=time_in,
            time_out=time_out,
            break_hours=round_hours(coerce_hours(break_hours)),
            total_hours=total,
            notes=notes or "",
            created_at=now,
            updated_at=now,
        )
        self.entries.append(entry)
        self.save()
        logger.debug(f"Added entry {entry.id} on {work_date} ({total} h) to sheet {sheet.id}")
        return entry

    def update_entry(self, entry_id: str, work_date: Optional[str] = None,
                     time_in: Optional[str] = None, time_out: Optional[str] = None,
                     break_hours: Any = None, notes: Optional[str] = None) -> Entry:
        entry = self.require_entry(entry_id)
        new_date = work_date if work_date is not None else entry.work_date
        new_in = time_in if time_in is not None else entry.time_in
        new_out = time_out if time_out is not None else entry.time_out
        new_break = break_hours if break_hours is not None else entry.break_hours
        total = self._compute_total(self.get_sheet(entry.sheet_id), new_date, new_in, new_out, new_break)

        entry.work_date = new_date
        entry.time_in = new_in
        entry.time_out = new_out
        entry.break_hours = round_hours(coerce_hours(new_break))
        entry.total_hours = total
        if notes is not None:
            entry.notes = notes
        entry.updated_at = now_iso()
        self.save()
        return entry

    def delete_entry(self, entry_id: str) -> Entry:
        entry = self.require_entry(entry_id)
        self.snapshot.entries = [e for e in self.entries if e.id != entry_id]
        self.save()
        return entry

    # --- Settings ---
    def update_sync_config(self, read_url: Optional[str] = None, write_url: Optional[str] = None,
                           method: Optional[str] = None, bearer_token: Optional[str] = None):
        sync = self.snapshot.settings.sync
        if method is not None:
            method = method.strip().upper()
            if method not in SYNC_METHODS:
                raise ValidationError(f"Write method must be one of {', '.join(SYNC_METHODS)}.")
            sync.method = method
        if read_url is not None:
            sync.read_url = read_url.strip()
        if write_url is not None:
            sync.write_url = write_url.strip()
        if bearer_token is not None:
            sync.bearer_token = bearer_token.strip()
        self.save()
        return sync

    def mark_synced(self, timestamp: Optional[str] = None) -> str:
        self.snapshot.settings.sync.last_sync_at = timestamp or now_iso()
        self.save()
        return self.snapshot.settings.sync.last_sync_at

    # --- Whole-snapshot operations ---
    def replace_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.save()

    def reset(self) -> None:
        if self.slot is not None:
            self.slot.clear()
        self.snapshot = seed_snapshot()
        self.save()
        logger.info("Store reset to seed data")
