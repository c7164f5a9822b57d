import typer

from tsheet.logging_config import enable_debug_logging, setup_logging
from tsheet.SYNC.sync_app import data_app, sync_app
from tsheet.TIMETRACK.timesheet_app import client_app, entry_app, sheet_app

app = typer.Typer(help="Local timesheets: clients, pay-period sheets and time entries.")
app.add_typer(client_app, name="client", help="Manage clients.")
app.add_typer(sheet_app, name="sheet", help="Manage pay-period time sheets.")
app.add_typer(entry_app, name="entry", help="Log and review time entries.")
app.add_typer(data_app, name="data", help="Export, import and reset local data.")
app.add_typer(sync_app, name="sync", help="Load from and save to a remote JSON endpoint.")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logging."),
    log_file: bool = typer.Option(False, "--log-file", help="Also write logs to the data directory.")
):
    if log_file:
        for component in ("STORE", "SYNC", "CLI"):
            setup_logging(component, log_to_file=True)
    if verbose:
        enable_debug_logging()


if __name__ == "__main__":
    app()
