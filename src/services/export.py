"""JSON and CSV rendering of debt listings."""

import csv
import io
import json
from datetime import datetime

from src.models.enums import ExportFormat
from src.schemas.debt import DebtResponse
from src.services.exceptions import ValidationError

CSV_COLUMNS = [
    "Id",
    "Title",
    "Description",
    "Amount",
    "Currency",
    "Status",
    "Counterparty",
    "Due Date",
    "Paid At",
    "Created At",
]

MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
}


def _format_timestamp(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


def debts_to_json(debts: list[DebtResponse]) -> str:
    """Pretty-printed JSON array of the flat debt representation."""
    return json.dumps([debt.model_dump(mode="json") for debt in debts], indent=2)


def debts_to_csv(debts: list[DebtResponse]) -> str:
    """CSV with a header row; fields containing delimiters are quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for debt in debts:
        writer.writerow(
            [
                debt.id,
                debt.title,
                debt.description or "",
                f"{debt.amount:.2f}",
                debt.currency,
                debt.status.value,
                debt.counterparty_name or "",
                _format_timestamp(debt.due_date),
                _format_timestamp(debt.paid_at),
                _format_timestamp(debt.created_at),
            ]
        )
    return buffer.getvalue()


def parse_export_format(value: ExportFormat | str) -> ExportFormat:
    if isinstance(value, ExportFormat):
        return value
    try:
        return ExportFormat(value.strip().lower())
    except ValueError as e:
        raise ValidationError("Unsupported export format. Use 'json' or 'csv'") from e


def export_debts(debts: list[DebtResponse], export_format: ExportFormat) -> str:
    if export_format == ExportFormat.CSV:
        return debts_to_csv(debts)
    return debts_to_json(debts)
