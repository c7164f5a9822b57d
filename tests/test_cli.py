"""
End-to-end tests for the tsheet command line, run against a temporary TSHEET_HOME.
"""

import json
from unittest.mock import Mock, patch

import pytest
from typer.testing import CliRunner

from tsheet.cli import app
from tsheet.TIMETRACK.database import JsonSlot
from tsheet.TIMETRACK.store import RecordStore

runner = CliRunner()


def load_store():
    return RecordStore.open(JsonSlot())


@pytest.fixture
def seeded():
    """The starter client and sheet, as created on first run."""
    store = load_store()
    return store.clients[0], store.sheets[0]


class TestClientCommands:

    def test_add_and_list(self, seeded):
        result = runner.invoke(app, ["client", "add", "Grace Chapel"])
        assert result.exit_code == 0
        assert "Added client" in result.stdout
        assert [c.name for c in load_store().clients] == ["First Baptist Church", "Grace Chapel"]

        result = runner.invoke(app, ["client", "list"])
        assert result.exit_code == 0
        assert "Grace Chapel" in result.stdout

    def test_rename_missing_client(self, seeded):
        result = runner.invoke(app, ["client", "rename", "nope", "New"])
        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestSheetCommands:

    def test_add_with_weeks(self, seeded):
        client, _ = seeded
        result = runner.invoke(app, ["sheet", "add", "--client", client.id, "--start", "2026-03-02", "--weeks", "2"])
        assert result.exit_code == 0
        sheet = load_store().current_sheet_for_client(client.id)
        assert (sheet.period_start, sheet.period_end) == ("2026-03-02", "2026-03-15")
        assert sheet.person_name == "Name Here"

    def test_add_rejects_reversed_period(self, seeded):
        client, _ = seeded
        result = runner.invoke(app, ["sheet", "add", "-c", client.id, "-s", "2026-03-15", "-e", "2026-03-01"])
        assert result.exit_code == 1
        assert "Period end" in result.stdout
        assert len(load_store().sheets) == 1

    def test_show(self, seeded):
        _, sheet = seeded
        result = runner.invoke(app, ["sheet", "show", sheet.id])
        assert result.exit_code == 0
        assert "First Baptist Church" in result.stdout
        assert "Total Hours: 0.00" in result.stdout

    def test_delete_requires_policy_with_yes(self, seeded):
        _, sheet = seeded
        result = runner.invoke(app, ["sheet", "delete", sheet.id, "--yes"])
        assert result.exit_code == 1
        assert len(load_store().sheets) == 1

    def test_delete_interactive_sheet_only(self, seeded):
        _, sheet = seeded
        runner.invoke(app, ["entry", "add", "--sheet", sheet.id])
        # decline the cascade prompt, accept the sheet-only prompt
        result = runner.invoke(app, ["sheet", "delete", sheet.id], input="n\ny\n")
        assert result.exit_code == 0
        store = load_store()
        assert store.sheets == []
        assert len(store.orphaned_entries()) == 1

        result = runner.invoke(app, ["entry", "orphans"])
        assert "Entries without a sheet" in result.stdout

    def test_delete_cascade(self, seeded):
        _, sheet = seeded
        runner.invoke(app, ["entry", "add", "--sheet", sheet.id])
        result = runner.invoke(app, ["sheet", "delete", sheet.id, "--cascade", "--yes"])
        assert result.exit_code == 0
        assert "along with 1 entries" in result.stdout
        assert load_store().entries == []

    def test_delete_cancelled(self, seeded):
        _, sheet = seeded
        result = runner.invoke(app, ["sheet", "delete", sheet.id], input="n\nn\n")
        assert result.exit_code == 0
        assert "cancelled" in result.stdout
        assert len(load_store().sheets) == 1


class TestEntryCommands:

    def test_add_to_current_sheet(self, seeded):
        client, sheet = seeded
        result = runner.invoke(app, [
            "entry", "add", "--client", client.id, "--date", "2026-02-17",
            "--in", "09:00", "--out", "17:30", "--break", "0.5", "--notes", "Office",
        ])
        assert result.exit_code == 0
        assert "Added 8.00 hours" in result.stdout
        entry = load_store().entries[0]
        assert entry.sheet_id == sheet.id
        assert entry.total_hours == 8.0

    def test_add_defaults_to_period_start(self, seeded):
        _, sheet = seeded
        runner.invoke(app, ["entry", "add", "--sheet", sheet.id])
        assert load_store().entries[0].work_date == sheet.period_start

    def test_add_outside_period_fails(self, seeded):
        client, _ = seeded
        result = runner.invoke(app, ["entry", "add", "-c", client.id, "-d", "2026-04-01"])
        assert result.exit_code == 1
        assert "Date must be within" in result.stdout
        assert load_store().entries == []

    def test_add_bad_time_fails(self, seeded):
        client, _ = seeded
        result = runner.invoke(app, ["entry", "add", "-c", client.id, "--in", "9am"])
        assert result.exit_code == 1
        assert "HH:MM" in result.stdout

    def test_add_needs_client_or_sheet(self, seeded):
        result = runner.invoke(app, ["entry", "add"])
        assert result.exit_code == 1

    def test_edit_and_delete(self, seeded):
        _, sheet = seeded
        runner.invoke(app, ["entry", "add", "--sheet", sheet.id])
        entry_id = load_store().entries[0].id

        result = runner.invoke(app, ["entry", "edit", entry_id, "--out", "12:00"])
        assert result.exit_code == 0
        assert load_store().entries[0].total_hours == 3.0

        result = runner.invoke(app, ["entry", "delete", entry_id, "--yes"])
        assert result.exit_code == 0
        assert load_store().entries == []

    def test_list_with_search(self, seeded):
        _, sheet = seeded
        runner.invoke(app, ["entry", "add", "--sheet", sheet.id, "-d", "2026-02-17", "-n", "rehearsal"])
        runner.invoke(app, ["entry", "add", "--sheet", sheet.id, "-d", "2026-02-18", "-n", "setup"])

        result = runner.invoke(app, ["entry", "list", "--search", "rehearsal"])
        assert result.exit_code == 0
        assert "All entries: 2" in result.stdout
        assert "rehearsal" in result.stdout
        assert "setup" not in result.stdout
        assert "In current period: 1" in result.stdout

    def test_list_counts_only_current_period(self, seeded):
        client, sheet = seeded
        runner.invoke(app, ["entry", "add", "--sheet", sheet.id, "-d", "2026-02-17"])
        runner.invoke(app, ["sheet", "add", "-c", client.id, "-s", "2026-03-02", "-w", "2"])
        runner.invoke(app, ["entry", "add", "-c", client.id, "-d", "2026-03-03"])

        result = runner.invoke(app, ["entry", "list", "-c", client.id])
        assert result.exit_code == 0
        assert "All entries: 2" in result.stdout
        assert "In current period: 1" in result.stdout
        assert "Current period hours: 8.00" in result.stdout


class TestDataCommands:

    def test_export_to_stdout(self, seeded):
        result = runner.invoke(app, ["data", "export", "--stdout"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["meta"]["app"] == "local-timesheet"
        assert payload["meta"]["version"] == 2
        assert payload["clients"][0]["name"] == "First Baptist Church"

    def test_export_to_file(self, seeded, tmp_path):
        target = tmp_path / "out.json"
        result = runner.invoke(app, ["data", "export", "-o", str(target)])
        assert result.exit_code == 0
        assert json.loads(target.read_text(encoding="utf-8"))["sheets"][0]["periodStart"] == "2026-02-16"

    def test_export_to_missing_directory_fails_cleanly(self, seeded, tmp_path):
        target = tmp_path / "missing" / "out.json"
        result = runner.invoke(app, ["data", "export", "-o", str(target)])
        assert result.exit_code == 1
        assert "Export failed" in result.stdout
        assert not target.exists()

    def test_import_merge(self, seeded, tmp_path):
        client, _ = seeded
        source = tmp_path / "in.json"
        source.write_text(json.dumps({
            "clients": [{"id": client.id, "name": "Renamed"}, {"id": "new", "name": "New Client"}],
        }), encoding="utf-8")

        result = runner.invoke(app, ["data", "import", str(source)])
        assert result.exit_code == 0
        assert [c.name for c in load_store().clients] == ["Renamed", "New Client"]
        assert len(load_store().sheets) == 1

    def test_import_replace(self, seeded, tmp_path):
        source = tmp_path / "in.json"
        source.write_text(json.dumps({"clients": [{"id": "only", "name": "Only"}]}), encoding="utf-8")
        result = runner.invoke(app, ["data", "import", str(source), "--mode", "replace"])
        assert result.exit_code == 0
        store = load_store()
        assert [c.id for c in store.clients] == ["only"]
        assert store.sheets == []

    def test_import_rejects_non_object(self, seeded, tmp_path):
        source = tmp_path / "in.json"
        source.write_text("[1, 2, 3]", encoding="utf-8")
        result = runner.invoke(app, ["data", "import", str(source)])
        assert result.exit_code == 1
        assert "Import failed" in result.stdout
        assert load_store().clients[0].name == "First Baptist Church"

    def test_reset(self, seeded):
        runner.invoke(app, ["client", "add", "Extra"])
        result = runner.invoke(app, ["data", "reset", "--yes"])
        assert result.exit_code == 0
        assert [c.name for c in load_store().clients] == ["First Baptist Church"]


class TestSyncCommands:

    def test_config_and_status(self, seeded):
        result = runner.invoke(app, ["sync", "config", "--write-url", "https://example.com/w", "--method", "post"])
        assert result.exit_code == 0
        sync = load_store().snapshot.settings.sync
        assert sync.write_url == "https://example.com/w"
        assert sync.method == "POST"
        assert "Never" in result.stdout

    def test_config_rejects_unknown_method(self, seeded):
        result = runner.invoke(app, ["sync", "config", "--method", "PATCH"])
        assert result.exit_code == 1

    def test_pull_with_blank_url(self, seeded):
        result = runner.invoke(app, ["sync", "pull"])
        assert result.exit_code == 1
        assert "Read URL is blank" in result.stdout

    def test_push(self, seeded):
        runner.invoke(app, ["sync", "config", "--write-url", "https://example.com/w", "--token", "tok"])
        response = Mock(status_code=200, reason="OK", text="", content=b"")
        session = Mock()
        session.headers = {}
        session.request.return_value = response

        with patch("tsheet.SYNC.gateway.requests.Session", return_value=session):
            result = runner.invoke(app, ["sync", "push"])

        assert result.exit_code == 0
        assert "Saved to URL successfully" in result.stdout
        method, url = session.request.call_args[0]
        assert (method, url) == ("PUT", "https://example.com/w")
        assert session.request.call_args[1]["headers"]["Authorization"] == "Bearer tok"
        assert load_store().snapshot.settings.sync.last_sync_at != ""
