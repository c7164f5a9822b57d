# sync/sync_app.py
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tsheet.errors import TimesheetError
from tsheet.logging_config import get_cli_logger, mask_token
from tsheet.SYNC.gateway import SyncService
from tsheet.SYNC.reconcile import (IMPORT_MODES, apply_import,
                                   client_export_filename,
                                   client_export_payload, dumps_document,
                                   export_filename, export_payload,
                                   loads_document)
from tsheet.TIMETRACK.timesheet_app import fail, store_session

console = Console()
logger = get_cli_logger()

data_app = typer.Typer(help="Export, import and reset local data.")
sync_app = typer.Typer(help="Load from and save to a remote JSON endpoint.")


# --- Export / import ---

@data_app.command("export")
def export_data(
    client_id: Optional[str] = typer.Option(None, "--client", "-c", help="Only export this client, its sheets and entries."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File to write. Defaults to a timestamped name in the current directory."),
    stdout: bool = typer.Option(False, "--stdout", help="Print the JSON instead of writing a file.")
):
    """
    Export local data as JSON (with an export timestamp for round trips).
    """
    with store_session() as store:
        if client_id:
            client = store.require_client(client_id)
            payload = client_export_payload(store.snapshot, client.id)
            filename = client_export_filename(client.name)
        else:
            payload = export_payload(store.snapshot)
            filename = export_filename()

    text = dumps_document(payload)
    if stdout:
        typer.echo(text)
        return

    target = output or Path(filename)
    try:
        target.write_text(text, encoding="utf-8")
    except OSError as e:
        fail(f"Export failed: {e}")
    console.print(
        f"Exported {len(payload['clients'])} clients, {len(payload['sheets'])} sheets and "
        f"{len(payload['entries'])} entries to '[bold green]{target}[/bold green]'"
    )


@data_app.command("import")
def import_data(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON file to import."),
    mode: str = typer.Option("merge", "--mode", "-m", help="merge: keep existing data, add/overwrite by id. replace: use the file as-is.")
):
    """
    Import a JSON export into local data.
    """
    mode = mode.lower().strip()
    if mode not in IMPORT_MODES:
        fail(f"Invalid mode '{mode}'. Choose from: {', '.join(IMPORT_MODES)}.")

    try:
        text = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        fail(f"Import failed: {e}")

    with store_session() as store:
        try:
            incoming = loads_document(text)
        except TimesheetError as e:
            fail(f"Import failed: {e}")
        store.replace_snapshot(apply_import(store.snapshot, incoming, mode))
        counts = store.counts()
    logger.info(f"Imported {file} ({mode})")
    console.print(
        f"Imported successfully ({mode}). Now {counts['clients']} clients, "
        f"{counts['sheets']} sheets, {counts['entries']} entries."
    )


@data_app.command("reset")
def reset_data(yes: bool = typer.Option(False, "--yes", "-y", help="Assume 'yes' to the confirmation prompt.")):
    """
    Reset ALL local data back to the starter client and sheet.
    """
    if not yes and not typer.confirm("Reset ALL local data for this app?"):
        console.print("Reset cancelled.")
        raise typer.Exit()
    with store_session() as store:
        store.reset()
    console.print("Local data reset.")


# --- Remote sync ---

@sync_app.command("config")
def configure(
    read_url: Optional[str] = typer.Option(None, "--read-url", help="URL to GET the JSON document from."),
    write_url: Optional[str] = typer.Option(None, "--write-url", help="URL to PUT/POST the JSON document to."),
    method: Optional[str] = typer.Option(None, "--method", help="Write method: PUT or POST."),
    token: Optional[str] = typer.Option(None, "--token", help="Bearer token sent with every request (empty string clears it).")
):
    """
    Save sync settings. Options that are not given keep their current value.
    """
    with store_session() as store:
        store.update_sync_config(read_url=read_url, write_url=write_url, method=method, bearer_token=token)
    console.print("Saved sync settings.")
    show_status()


@sync_app.command("status")
def show_status():
    """
    Show sync settings and the last sync time.
    """
    with store_session() as store:
        sync = store.snapshot.settings.sync

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Read URL", sync.read_url or "[dim](blank)[/dim]")
    table.add_row("Write URL", sync.write_url or "[dim](blank)[/dim]")
    table.add_row("Write method", sync.write_method)
    table.add_row("Bearer token", mask_token(sync.bearer_token))
    table.add_row("Last sync", sync.last_sync_at or "Never")
    console.print(table)


@sync_app.command("pull")
def pull():
    """
    Load from the read URL and merge into local data (remote wins for matching ids).
    """
    with store_session() as store:
        try:
            merged = SyncService(store).pull()
        except TimesheetError as e:
            fail(f"Load failed: {e}")
    console.print(
        f"Loaded from URL and merged into local data: {len(merged.clients)} clients, "
        f"{len(merged.sheets)} sheets, {len(merged.entries)} entries."
    )


@sync_app.command("push")
def push():
    """
    Save all local data to the write URL.
    """
    with store_session() as store:
        try:
            SyncService(store).push()
        except TimesheetError as e:
            fail(f"Save failed: {e}")
    console.print("Saved to URL successfully.")
