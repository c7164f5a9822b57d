# timetrack/timesheet_app.py
import contextlib
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional

import dateparser  # For natural language dates ("yesterday", "last monday")
import typer
from dateutil.relativedelta import relativedelta
from rich.console import Console
from rich.table import Table
from rich.text import Text

from tsheet.errors import TimesheetError
from tsheet.logging_config import get_cli_logger
from tsheet.TIMETRACK.database import JsonSlot
from tsheet.TIMETRACK.model import Entry, Sheet
from tsheet.TIMETRACK.store import RecordStore
from tsheet.TIMETRACK.timecalc import (coerce_hours, format_date, format_hours,
                                       in_range, round_hours)

console = Console()
logger = get_cli_logger()

client_app = typer.Typer(help="Manage clients.")
sheet_app = typer.Typer(help="Manage pay-period time sheets.")
entry_app = typer.Typer(help="Log and review time entries.")


# --- Shared helpers ---

def open_store() -> RecordStore:
    return RecordStore.open(JsonSlot())


def fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


@contextlib.contextmanager
def store_session() -> Iterator[RecordStore]:
    """Open the store for one command and report core errors the CLI way."""
    try:
        with open_store() as store:
            yield store
    except TimesheetError as e:
        logger.debug(f"Command failed: {e!r}")
        fail(str(e))


def parse_date_arg(date_str: Optional[str]) -> Optional[str]:
    """ISO date first, then natural language. Returns YYYY-MM-DD."""
    if not date_str:
        return None
    try:
        return date.fromisoformat(date_str).isoformat()
    except ValueError:
        parsed = dateparser.parse(date_str)
        if parsed:
            return parsed.date().isoformat()
        fail(f"Could not parse date: '{date_str}'")


def period_end_for(start: str, weeks: int) -> str:
    """Last day of a period starting on ``start`` and lasting ``weeks`` weeks."""
    end = date.fromisoformat(start) + relativedelta(weeks=weeks) - timedelta(days=1)
    return end.isoformat()


def entry_rows(table: Table, entries: List[Entry], with_ids: bool = False) -> None:
    for e in entries:
        row = [
            format_date(e.work_date),
            e.time_in or "",
            e.time_out or "",
            format_hours(e.break_hours or 0),
            f"[bold]{format_hours(e.total_hours)}[/bold]",
            e.notes or "",
        ]
        if with_ids:
            row.append(str(e.id))
        table.add_row(*row)


def entry_table(entries: List[Entry], with_ids: bool = False, title: Optional[str] = None) -> Table:
    table = Table(show_header=True, header_style="bold blue", title=title)
    table.add_column("Date")
    table.add_column("In")
    table.add_column("Out")
    table.add_column("Break (hrs)", justify="right")
    table.add_column("Total (hrs)", justify="right")
    table.add_column("Notes")
    if with_ids:
        table.add_column("ID", style="dim")
    entry_rows(table, entries, with_ids)
    return table


def hours_sum(entries: List[Entry]) -> float:
    return round_hours(sum(coerce_hours(e.total_hours) for e in entries))


def period_str(sheet: Sheet) -> str:
    return f"{format_date(sheet.period_start)} → {format_date(sheet.period_end)}"


# --- Clients ---

@client_app.command("add")
def add_client(name: str = typer.Argument(..., help="Client name.")):
    """
    Add a client.
    """
    with store_session() as store:
        client = store.add_client(name)
    console.print(f"Added client '[bold green]{client.name}[/bold green]' (id {client.id})")


@client_app.command("list")
def list_clients():
    """
    List clients with their sheet and entry counts.
    """
    with store_session() as store:
        if not store.clients:
            console.print("No clients yet. Use 'tsheet client add <name>' to create one.")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Client")
        table.add_column("Sheets", justify="right")
        table.add_column("Entries", justify="right")
        table.add_column("Hours", justify="right")
        for c in store.clients:
            entries = store.client_entries(c.id)
            table.add_row(
                str(c.id), str(c.name),
                str(len(store.sheets_by_recency(c.id))),
                str(len(entries)),
                format_hours(hours_sum(entries)),
            )
        console.print(table)


@client_app.command("rename")
def rename_client(client_id: str = typer.Argument(...), name: str = typer.Argument(...)):
    """
    Rename a client.
    """
    with store_session() as store:
        client = store.rename_client(client_id, name)
    console.print(f"Renamed client {client.id} to '[bold cyan]{client.name}[/bold cyan]'")


# --- Sheets ---

@sheet_app.command("add")
def add_sheet(
    client_id: str = typer.Option(..., "--client", "-c", help="Client the sheet belongs to."),
    start: str = typer.Option(..., "--start", "-s", help="First day of the period (e.g. '2026-02-16', 'last monday')."),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="Last day of the period. Defaults to start + --weeks."),
    weeks: int = typer.Option(2, "--weeks", "-w", help="Period length in weeks when --end is not given."),
    person: Optional[str] = typer.Option(None, "--person", "-p", help="Name printed on the sheet. Defaults to the most recent sheet's name.")
):
    """
    Create a time sheet (pay period) for a client.
    """
    period_start = parse_date_arg(start)
    if end:
        period_end = parse_date_arg(end)
    else:
        if weeks < 1:
            fail("--weeks must be at least 1.")
        period_end = period_end_for(period_start, weeks)

    with store_session() as store:
        sheet = store.add_sheet(client_id, person or store.last_person_name(), period_start, period_end)
        client_name = store.client_name(client_id)
    console.print(f"Created sheet for '[bold green]{client_name}[/bold green]': {period_str(sheet)} (id {sheet.id})")


@sheet_app.command("list")
def list_sheets(client_id: Optional[str] = typer.Option(None, "--client", "-c", help="Only this client's sheets.")):
    """
    List time sheets, most recent period first.
    """
    with store_session() as store:
        counts = store.counts()
        console.print(
            f"Clients: [bold]{counts['clients']}[/bold]  "
            f"Sheets: [bold]{counts['sheets']}[/bold]  "
            f"Entries: [bold]{counts['entries']}[/bold]"
        )
        sheets = store.sheets_by_recency(client_id)
        if not sheets:
            console.print("No timesheets yet. Use 'tsheet sheet add' to create one.")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("For")
        table.add_column("Client")
        table.add_column("Period")
        table.add_column("Entries", justify="right")
        table.add_column("Total Hours", justify="right")
        table.add_column("ID", style="dim")
        for s in sheets:
            totals = store.sheet_totals(s)
            table.add_row(
                f"[bold]{s.person_name or '-'}[/bold]",
                store.client_name(s.client_id),
                period_str(s),
                str(totals.count),
                f"[bold]{format_hours(totals.sum_hours)}[/bold]",
                str(s.id),
            )
        console.print(table)


@sheet_app.command("show")
def show_sheet(sheet_id: str = typer.Argument(..., help="Sheet to print.")):
    """
    Print a time sheet with all of its entries and the total.
    """
    with store_session() as store:
        sheet = store.require_sheet(sheet_id)
        entries = store.sheet_entries(sheet.id)
        client_name = store.client_name(sheet.client_id)

    console.print("\n[bold]Time Sheet[/bold]")
    console.print(f"[bold]Client:[/bold] {client_name}")
    console.print(f"[bold]Name:[/bold] {sheet.person_name or '-'}")
    console.print(f"[bold]Period:[/bold] {period_str(sheet)}")
    if entries:
        console.print(entry_table(entries))
    else:
        console.print("    No entries for this sheet.")
    console.print(Text(f"Total Hours: {format_hours(hours_sum(entries))}", style="bold blue"))
    console.print(f"[dim]Printed: {datetime.now().strftime('%Y-%m-%d %H:%M')}[/dim]")


@sheet_app.command("edit")
def edit_sheet(
    sheet_id: str = typer.Argument(...),
    person: Optional[str] = typer.Option(None, "--person", "-p", help="New name for the sheet."),
    start: Optional[str] = typer.Option(None, "--start", "-s", help="New first day of the period."),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="New last day of the period.")
):
    """
    Change a sheet's name or period. Entries that fall outside a new period are kept as they are.
    """
    if person is None and start is None and end is None:
        fail("Nothing to change. Pass --person, --start or --end.")
    with store_session() as store:
        sheet = store.update_sheet(sheet_id, person_name=person,
                                   period_start=parse_date_arg(start),
                                   period_end=parse_date_arg(end))
        outside = [
            e for e in store.sheet_entries(sheet.id)
            if not in_range(e.work_date, sheet.period_start, sheet.period_end)
        ]
    console.print(f"Updated sheet {sheet.id}: {period_str(sheet)}")
    if outside:
        console.print(f"[bold yellow]Warning:[/bold yellow] {len(outside)} entries now fall outside this period.")


@sheet_app.command("delete")
def delete_sheet(
    sheet_id: str = typer.Argument(...),
    cascade: Optional[bool] = typer.Option(None, "--cascade/--sheet-only", help="Also delete the sheet's entries, or leave them in storage."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Assume 'yes' to confirmation prompts.")
):
    """
    Delete a time sheet, with or without its entries.
    """
    with store_session() as store:
        sheet = store.require_sheet(sheet_id)
        entry_count = store.sheet_totals(sheet).count

        if cascade is None:
            if yes:
                fail("Choose --cascade or --sheet-only when using --yes.")
            console.print(
                f"Client: {store.client_name(sheet.client_id)}\n"
                f"Period: {period_str(sheet)}\n"
                f"It has {entry_count} entries."
            )
            if typer.confirm("Delete this sheet AND its entries?"):
                cascade = True
            elif typer.confirm("Delete sheet ONLY (leave entries in storage)? Those entries won't appear in any sheet totals."):
                cascade = False
            else:
                console.print("Deletion cancelled.")
                raise typer.Exit()
        elif not yes:
            what = "and all its entries" if cascade else "but keep its entries"
            if not typer.confirm(f"Delete sheet {period_str(sheet)} {what}?"):
                console.print("Deletion cancelled.")
                raise typer.Exit()

        removed = store.delete_sheet(sheet.id, cascade=cascade)

    if cascade:
        console.print(f"Sheet deleted along with {removed} entries.")
    else:
        console.print(f"Sheet deleted. {entry_count} entries were left without a sheet (see 'tsheet entry orphans').")


# --- Entries ---

def _resolve_sheet(store: RecordStore, client_id: Optional[str], sheet_id: Optional[str]) -> Sheet:
    if sheet_id:
        return store.require_sheet(sheet_id)
    if not client_id:
        fail("Pass --client or --sheet.")
    store.require_client(client_id)
    sheet = store.current_sheet_for_client(client_id)
    if sheet is None:
        fail("No timesheet period for that client yet. Create one with 'tsheet sheet add'.")
    return sheet


@entry_app.command("add")
def add_entry(
    client_id: Optional[str] = typer.Option(None, "--client", "-c", help="Client; the entry goes on their current sheet."),
    sheet_id: Optional[str] = typer.Option(None, "--sheet", "-s", help="Sheet to log against (overrides --client)."),
    work_date: Optional[str] = typer.Option(None, "--date", "-d", help="Work date. Defaults to the first day of the period."),
    time_in: str = typer.Option("09:00", "--in", help="Time in, HH:MM (24-hour)."),
    time_out: str = typer.Option("17:00", "--out", help="Time out, HH:MM. Earlier than --in means an overnight shift."),
    break_hours: float = typer.Option(0.0, "--break", "-b", help="Break length in hours (0.5 = 30 minutes)."),
    notes: str = typer.Option("", "--notes", "-n", help="Optional notes.")
):
    """
    Add a time entry. Total = (Time Out − Time In) − Breaks.
    """
    with store_session() as store:
        sheet = _resolve_sheet(store, client_id, sheet_id)
        entry = store.add_entry(
            sheet.id,
            parse_date_arg(work_date) or sheet.period_start,
            time_in, time_out, break_hours, notes,
        )
        totals = store.sheet_totals(sheet)
    console.print(
        f"Added {format_hours(entry.total_hours)} hours on {format_date(entry.work_date)} "
        f"({entry.time_in} → {entry.time_out}, {format_hours(entry.break_hours)} break). "
        f"Sheet now has {totals.count} entries, [bold]{format_hours(totals.sum_hours)}[/bold] hours."
    )


@entry_app.command("edit")
def edit_entry(
    entry_id: str = typer.Argument(...),
    work_date: Optional[str] = typer.Option(None, "--date", "-d", help="New work date."),
    time_in: Optional[str] = typer.Option(None, "--in", help="New time in."),
    time_out: Optional[str] = typer.Option(None, "--out", help="New time out."),
    break_hours: Optional[float] = typer.Option(None, "--break", "-b", help="New break length in hours."),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="New notes.")
):
    """
    Edit a time entry; the total is recomputed.
    """
    with store_session() as store:
        entry = store.update_entry(entry_id, work_date=parse_date_arg(work_date), time_in=time_in,
                                   time_out=time_out, break_hours=break_hours, notes=notes)
    console.print(f"Updated entry {entry.id}: {format_hours(entry.total_hours)} hours on {format_date(entry.work_date)}")


@entry_app.command("delete")
def delete_entry(
    entry_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Assume 'yes' to confirmation prompts.")
):
    """
    Delete a time entry.
    """
    with store_session() as store:
        entry = store.require_entry(entry_id)
        if not yes and not typer.confirm(f"Delete this time entry ({format_date(entry.work_date)}, {format_hours(entry.total_hours)} hours)?"):
            console.print("Deletion cancelled.")
            raise typer.Exit()
        store.delete_entry(entry_id)
    console.print(f"Entry {entry_id} deleted.")


@entry_app.command("list")
def list_entries(
    client_id: Optional[str] = typer.Option(None, "--client", "-c", help="Client to show. Defaults to the first client."),
    sheet_id: Optional[str] = typer.Option(None, "--sheet", "-s", help="Period to summarise. Defaults to the client's current sheet."),
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Filter by date, time or notes (e.g. '2026-02-20' or 'rehearsal')."),
    ids: bool = typer.Option(False, "--ids", "-v", help="Include entry IDs in the output.")
):
    """
    Show a client's entries, oldest first, with current-period totals.
    """
    with store_session() as store:
        client = store.get_client(client_id) if client_id else (store.clients[0] if store.clients else None)
        if client is None:
            if client_id:
                fail(f"Client '{client_id}' not found.")
            console.print("No clients. Add one with 'tsheet client add <name>'.")
            return

        sheet = store.get_sheet(sheet_id) if sheet_id else None
        if sheet is None or sheet.client_id != client.id:
            sheet = store.current_sheet_for_client(client.id)

        all_entries = store.client_entries(client.id)
        filtered = store.search_entries(all_entries, search)
        current = store.search_entries(store.entries_in_period(client.id, sheet), search) if sheet else []

    console.print(f"\nEntries for [bold cyan]{client.name}[/bold cyan]")
    summary = f"All entries: [bold]{len(all_entries)}[/bold]  All hours: [bold]{format_hours(hours_sum(all_entries))}[/bold]  "
    summary += f"Period: [bold]{period_str(sheet)}[/bold]" if sheet else "[yellow]No period set[/yellow]"
    console.print(summary)
    if sheet:
        console.print(
            f"In current period: [bold]{len(current)}[/bold]  "
            f"Current period hours: [bold]{format_hours(hours_sum(current))}[/bold]"
        )

    if not filtered:
        console.print("No matching entries.")
        return
    console.print(entry_table(filtered, with_ids=ids))


@entry_app.command("orphans")
def list_orphans():
    """
    List entries whose sheet has been deleted. Nothing is changed.
    """
    with store_session() as store:
        orphans = store.orphaned_entries()
        names = {e.id: store.client_name(e.client_id) for e in orphans}

    if not orphans:
        console.print("Every entry belongs to an existing sheet.")
        return

    table = Table(show_header=True, header_style="bold yellow", title="Entries without a sheet")
    table.add_column("Client")
    table.add_column("Date")
    table.add_column("Total (hrs)", justify="right")
    table.add_column("Missing sheet", style="dim")
    table.add_column("ID", style="dim")
    for e in orphans:
        table.add_row(names[e.id], format_date(e.work_date), format_hours(e.total_hours), str(e.sheet_id), str(e.id))
    console.print(table)
