"""
Command-line interface for the store cash reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .matching.engine import ReconciliationEngine
from .models.records import ReconciliationResult, ReconciliationSummary
from .parsers.cash_report_parser import CashReportCsvParser
from .parsers.order_parser import OrderCsvParser
from .reports.excel_generator import ExcelReportGenerator
from .storage import CashReportRepository, Database, OrderRepository, ReconciliationLedger
from .utils.exceptions import ReconciliationError
from .utils.logging_config import setup_logging

console = Console()

DATE_FORMATS = ["%Y-%m-%d"]


class AppContext:
    """Configuration and database shared by every command."""

    def __init__(self, config: ReconConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.database = Database.from_config(config.database)

    def engine(self) -> ReconciliationEngine:
        return ReconciliationEngine(
            self.config,
            orders=OrderRepository(self.database),
            reports=CashReportRepository(self.database),
            ledger=ReconciliationLedger(self.database),
        )


pass_app = click.make_pass_decorator(AppContext)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("--database", "database_url", help="Override the database URL")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], database_url: Optional[str], verbose: bool):
    """Store cash collection reconciliation tool."""
    try:
        recon_config = load_config(config)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if database_url:
        recon_config.database.url = database_url

    log_level = logging.DEBUG if verbose else getattr(
        logging, recon_config.logging.level.upper(), logging.INFO
    )
    setup_logging(log_level, log_format=recon_config.logging.format)

    ctx.obj = AppContext(recon_config, verbose=verbose)


@main.command("init-db")
@pass_app
def init_db(app: AppContext):
    """Create the order, report and ledger tables."""
    app.database.create_tables()
    console.print(f"[green]Database initialized: {app.config.database.url}[/green]")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


@main.command("load-orders")
@click.argument("orders_file", type=click.Path(exists=True, path_type=Path))
@pass_app
def load_orders(app: AppContext, orders_file: Path):
    """
    Load an orders CSV into the order store.

    ORDERS_FILE: Path to the orders CSV export
    """
    _run(app, lambda: _load_orders(app, orders_file))


@main.command("load-reports")
@click.argument("reports_file", type=click.Path(exists=True, path_type=Path))
@pass_app
def load_reports(app: AppContext, reports_file: Path):
    """
    Load a cash reports CSV into the report store.

    REPORTS_FILE: Path to the cash reports CSV
    """
    _run(app, lambda: _load_reports(app, reports_file))


@main.command()
@click.option(
    "--date",
    "target_date",
    type=click.DateTime(formats=DATE_FORMATS),
    help="Date to reconcile; omit for every pickup date",
)
@click.option("--store", "store_id", help="Limit reconciliation to one store")
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--dry-run", is_flag=True, help="Skip the Excel report")
@click.option("--json", "as_json", is_flag=True, help="Print the summary counts as JSON")
@pass_app
def reconcile(
    app: AppContext,
    target_date: Optional[datetime],
    store_id: Optional[str],
    output: Optional[Path],
    dry_run: bool,
    as_json: bool,
):
    """Reconcile one date, or every date with orders."""

    def run() -> None:
        app.database.create_tables()
        engine = app.engine()
        if target_date is None:
            result = engine.reconcile_all(store_id)
        else:
            result = engine.reconcile_date(target_date.date(), store_id)
        _finish(app, result, output, dry_run, as_json)

    _run(app, run)


@main.command("reconcile-range")
@click.option(
    "--from",
    "start_date",
    required=True,
    type=click.DateTime(formats=DATE_FORMATS),
    help="Start date (inclusive)",
)
@click.option(
    "--to",
    "end_date",
    required=True,
    type=click.DateTime(formats=DATE_FORMATS),
    help="End date (inclusive)",
)
@click.option("--store", "store_id", help="Limit reconciliation to one store")
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--dry-run", is_flag=True, help="Skip the Excel report")
@click.option("--json", "as_json", is_flag=True, help="Print the summary counts as JSON")
@pass_app
def reconcile_range(
    app: AppContext,
    start_date: datetime,
    end_date: datetime,
    store_id: Optional[str],
    output: Optional[Path],
    dry_run: bool,
    as_json: bool,
):
    """Reconcile every date in an inclusive range."""

    def run() -> None:
        app.database.create_tables()
        result = app.engine().reconcile_range(start_date.date(), end_date.date(), store_id)
        _finish(app, result, output, dry_run, as_json)

    _run(app, run)


def _run(app: AppContext, action) -> None:
    """Run a command body, reporting failures and exiting non-zero."""
    try:
        action()
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if app.verbose:
            console.print_exception()
        sys.exit(1)
    finally:
        app.database.dispose()


def _load_orders(app: AppContext, orders_file: Path) -> None:
    app.database.create_tables()
    orders = OrderCsvParser(app.config).parse_file(orders_file)
    inserted = OrderRepository(app.database).add_all(orders)
    console.print(
        f"[green]Loaded {inserted} orders[/green] "
        f"({len(orders) - inserted} skipped as already present)"
    )


def _load_reports(app: AppContext, reports_file: Path) -> None:
    app.database.create_tables()
    reports = CashReportCsvParser(app.config).parse_file(reports_file)
    inserted = CashReportRepository(app.database).add_all(reports)
    console.print(
        f"[green]Loaded {inserted} cash reports[/green] "
        f"({len(reports) - inserted} skipped as already present)"
    )


def _finish(
    app: AppContext,
    result: ReconciliationResult,
    output: Optional[Path],
    dry_run: bool,
    as_json: bool,
) -> None:
    if as_json:
        console.print_json(data=result.summary.to_dict())
    else:
        _display_summary(result.summary)

    if dry_run:
        console.print("\n[yellow]Dry run - no report generated[/yellow]")
        return

    report_generator = ExcelReportGenerator(app.config)
    if output is None:
        output = report_generator.default_output_path()

    report_path = report_generator.generate_report(
        summary=result.summary,
        records=result.records,
        output_path=output,
    )
    console.print(f"\n[green]Report generated: {report_path}[/green]")


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    console.print(summary.message)

    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Reconciled Orders", str(summary.reconciled))
    table.add_row("Matched", str(summary.matched))
    table.add_row("Over Collection", str(summary.over_collection))
    table.add_row("Under Collection", str(summary.under_collection))
    table.add_row("Unaccounted", str(summary.unaccounted))
    table.add_row("High Priority", str(summary.high_priority))
    table.add_row("Match Rate", f"{summary.match_rate:.1f}%")
    table.add_row("Dates Processed", str(summary.dates_processed))
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)

    if summary.ambiguous_order_ids:
        console.print(
            f"[yellow]Orders claimed by several reports: "
            f"{', '.join(summary.ambiguous_order_ids)}[/yellow]"
        )


if __name__ == "__main__":
    main()
