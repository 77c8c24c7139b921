"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models.records import (
    ReconciliationRecord,
    ReconciliationStatus,
    ReconciliationSummary,
)
from ..config import ReconConfig, SheetConfig
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
VARIANCE_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

STATUS_FILLS = {
    ReconciliationStatus.MATCHED: MATCH_FILL,
    ReconciliationStatus.OVER_COLLECTION: VARIANCE_FILL,
    ReconciliationStatus.UNDER_COLLECTION: VARIANCE_FILL,
    ReconciliationStatus.UNACCOUNTED: UNMATCHED_FILL,
}

RECORD_HEADERS = [
    "Date",
    "Store",
    "Order ID",
    "Report ID",
    "Expected",
    "Actual",
    "Variance",
    "Variance %",
    "Status",
    "High Priority",
]


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.output_config = config.output.excel
        self.sheet_config = config.output.sheets

    def default_output_path(self, directory: Optional[Path] = None) -> Path:
        """Build an output path from the configured filename template."""
        now = datetime.now()
        name = self.output_config.filename_template.format(
            date=now.strftime("%Y%m%d"),
            time=now.strftime("%H%M%S") if self.output_config.include_timestamp else "",
        )
        return (directory or Path(".")) / name

    def generate_report(
        self,
        summary: ReconciliationSummary,
        records: list[ReconciliationRecord],
        output_path: Path,
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            summary: Summary of the reconciliation run
            records: Ledger records produced by the run
            output_path: Path for output file

        Returns:
            Path to generated report
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        if self.sheet_config.summary.enabled:
            self._create_summary_sheet(wb, summary)

        if self.sheet_config.records.enabled:
            self._create_records_sheet(wb, self.sheet_config.records, records)

        if self.sheet_config.discrepancies.enabled:
            discrepancies = sorted(
                (r for r in records if r.is_discrepancy),
                key=lambda r: r.discrepancy_magnitude,
                reverse=True,
            )
            self._create_records_sheet(wb, self.sheet_config.discrepancies, discrepancies)

        if self.sheet_config.high_priority.enabled:
            flagged = [r for r in records if r.is_high_priority]
            self._create_records_sheet(wb, self.sheet_config.high_priority, flagged)

        if self.sheet_config.store_breakdown.enabled:
            self._create_store_breakdown_sheet(wb, records)

        if not wb.sheetnames:
            raise ReportGenerationError("Every report sheet is disabled")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Cannot write report {output_path}: {e}") from e
        logger.info(f"Report saved: {output_path}")

        return output_path

    def _create_summary_sheet(self, wb: Workbook, summary: ReconciliationSummary) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Cash Collection Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        ws["A3"] = "Scope"
        ws["A3"].font = Font(bold=True)

        scope_info = [
            ("From:", summary.start_date.isoformat()),
            ("To:", summary.end_date.isoformat()),
            ("Store:", summary.store_id or "All stores"),
            ("Generated At:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
            ("Config File:", summary.config_file_used or "Default"),
        ]
        row = self._write_pairs(ws, 4, scope_info)

        row += 1
        ws[f"A{row}"] = "Order Counts"
        ws[f"A{row}"].font = Font(bold=True)

        count_data = [
            ("Reconciled Orders:", summary.reconciled),
            ("Matched:", summary.matched),
            ("Over Collection:", summary.over_collection),
            ("Under Collection:", summary.under_collection),
            ("Unaccounted:", summary.unaccounted),
            ("High Priority:", summary.high_priority),
            ("Match Rate:", f"{summary.match_rate:.1f}%"),
            ("Dates Processed:", summary.dates_processed),
            ("Processing Time:", f"{summary.processing_time_seconds:.2f}s"),
        ]
        row = self._write_pairs(ws, row + 1, count_data)

        if summary.ambiguous_order_ids:
            row += 1
            ws[f"A{row}"] = "Orders Claimed by Several Reports"
            ws[f"A{row}"].font = Font(bold=True)
            for order_id in summary.ambiguous_order_ids:
                row += 1
                ws[f"A{row}"] = order_id

        ws.column_dimensions["A"].width = 34
        ws.column_dimensions["B"].width = 30

    def _create_records_sheet(
        self,
        wb: Workbook,
        sheet: SheetConfig,
        records: list[ReconciliationRecord],
    ) -> None:
        """Create a sheet listing ledger records, one row each."""
        ws = wb.create_sheet(sheet.name)
        self._write_header(ws, RECORD_HEADERS)

        for row_num, record in enumerate(records, start=2):
            row_data = [
                record.reconciliation_date,
                record.store_id,
                record.order_id,
                record.report_id or "",
                float(record.expected_amount),
                _money(record.actual_amount),
                _money(record.variance_amount),
                _money(record.variance_pct),
                record.status.value,
                "Yes" if record.is_high_priority else "No",
            ]

            fill = STATUS_FILLS[record.status]
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = fill

        self._auto_fit_columns(ws)

    def _create_store_breakdown_sheet(
        self, wb: Workbook, records: list[ReconciliationRecord]
    ) -> None:
        """Per store and date counts and totals."""
        ws = wb.create_sheet(self.sheet_config.store_breakdown.name)

        headers = [
            "Date",
            "Store",
            "Orders",
            "Matched",
            "Over Collection",
            "Under Collection",
            "Unaccounted",
            "Total Expected",
            "Total Actual",
            "Total Variance",
            "High Priority",
        ]
        self._write_header(ws, headers)

        groups: dict[tuple[date, str], list[ReconciliationRecord]] = defaultdict(list)
        for record in records:
            groups[(record.reconciliation_date, record.store_id)].append(record)

        for row_num, ((day, store_id), group) in enumerate(sorted(groups.items()), start=2):
            counts = {status: 0 for status in ReconciliationStatus}
            for record in group:
                counts[record.status] += 1

            row_data = [
                day,
                store_id,
                len(group),
                counts[ReconciliationStatus.MATCHED],
                counts[ReconciliationStatus.OVER_COLLECTION],
                counts[ReconciliationStatus.UNDER_COLLECTION],
                counts[ReconciliationStatus.UNACCOUNTED],
                float(sum((r.expected_amount for r in group), Decimal("0"))),
                float(sum((r.actual_amount or Decimal("0") for r in group), Decimal("0"))),
                float(sum((r.variance_amount or Decimal("0") for r in group), Decimal("0"))),
                sum(1 for r in group if r.is_high_priority),
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER

        self._auto_fit_columns(ws)

    def _write_header(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_pairs(self, ws: Worksheet, start_row: int, pairs: list[tuple[str, Any]]) -> int:
        """Write label/value pairs downwards; returns the last row written."""
        row = start_row - 1
        for row, (label, value) in enumerate(pairs, start=start_row):
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
        return row

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)


def _money(value: Optional[Decimal]) -> Any:
    return float(value) if value is not None else ""
