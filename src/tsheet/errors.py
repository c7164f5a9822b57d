# tsheet/errors.py
from typing import Optional


class TimesheetError(Exception):
    """Base class for errors surfaced to the caller of a tsheet operation."""


class MalformedDocument(TimesheetError):
    """An imported or downloaded document is not a JSON object."""


class InvalidTimeInput(TimesheetError):
    """A clock time, work date or period bound failed validation."""


class ValidationError(TimesheetError):
    pass


class RecordNotFound(TimesheetError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} '{record_id}' not found.")
        self.kind = kind
        self.record_id = record_id


class TransportFailure(TimesheetError):
    """A sync request failed: blank URL, network error or non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SyncInProgress(TimesheetError):
    def __init__(self):
        super().__init__("Another sync is already running.")
