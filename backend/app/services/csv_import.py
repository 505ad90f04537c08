"""Timesheet CSV ingestion: parse, normalize, preview and import as one batch."""

import csv
import io
import logging
import re
from decimal import Decimal
from typing import Dict, List, Sequence

from sqlalchemy.orm import Session

from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.db.session import unit_of_work
from backend.app.models.customer import Customer
from backend.app.models.import_batch import ImportBatch
from backend.app.models.timesheet_entry import TimesheetEntry
from backend.app.schemas.csv_import import CsvImportPreview, ImportResult, ParsedCsvEntry
from backend.app.schemas.entry import EntryRead
from backend.app.services.formatters import parse_currency, parse_date_string, parse_time_string
from backend.app.services.rates import calculate_cost, to_decimal

logger = logging.getLogger(__name__)

CsvRow = Dict[str, str]

DATE_COLUMN = "Date"
BEGIN_COLUMN = "Begin"
END_COLUMN = "End"
MINUTES_COLUMN = "Total Minutes"
TASK_COLUMN = "Task"
REQUESTOR_COLUMN = "Requestor"
COST_COLUMN_PREFIX = "Cost("

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def parse_csv_file(content: str) -> List[CsvRow]:
    """Split raw CSV text into header-keyed rows.

    Headers are trimmed, blank lines dropped. Rows whose field count does
    not match the header are kept (missing cells read as empty) but logged.
    """
    content = content.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(content))
    try:
        header = next(reader)
    except StopIteration:
        return []
    header = [column.strip() for column in header]

    rows: List[CsvRow] = []
    for line_number, values in enumerate(reader, start=2):
        if not values or all(not value.strip() for value in values):
            continue
        if len(values) != len(header):
            logger.warning("CSV line %d has %d fields, expected %d", line_number, len(values), len(header))
        row = {column: (values[index] if index < len(values) else "") for index, column in enumerate(header)}
        rows.append(row)
    return rows


def _original_cost(row: CsvRow) -> Decimal:
    for column, value in row.items():
        if column.startswith(COST_COLUMN_PREFIX):
            return parse_currency(value)
    return Decimal("0")


def _parse_minutes(raw: str | None) -> int | None:
    """Leading integer of the cell (``90.5`` -> 90); None when there is none."""
    if raw is None:
        return None
    match = _LEADING_INT_RE.match(raw)
    return int(match.group(1)) if match else None


def normalize_row(row: CsvRow) -> ParsedCsvEntry | None:
    """Turn one raw row into an entry, or None when the row must be skipped."""
    total_minutes = _parse_minutes(row.get(MINUTES_COLUMN))
    if total_minutes is None or total_minutes <= 0:
        return None

    entry_date = parse_date_string(row.get(DATE_COLUMN))
    if entry_date is None:
        return None

    task = (row.get(TASK_COLUMN) or "").strip()
    if not task:
        return None

    requestor = (row.get(REQUESTOR_COLUMN) or "").strip() or None
    return ParsedCsvEntry(
        entry_date=entry_date,
        start_time=parse_time_string(row.get(BEGIN_COLUMN)),
        end_time=parse_time_string(row.get(END_COLUMN)),
        total_minutes=total_minutes,
        task_description=task,
        requestor=requestor,
        original_cost=_original_cost(row),
    )


def preview_csv_import(rows: Sequence[CsvRow], hourly_rate) -> CsvImportPreview:
    """Normalize rows and summarize what an import would create.

    ``total_cost`` is costed once over the summed minutes, so it can differ
    by a cent from the sum of the per-entry costs the import persists.
    """
    entries: List[ParsedCsvEntry] = []
    skipped_rows = 0
    for row in rows:
        parsed = normalize_row(row)
        if parsed is None:
            skipped_rows += 1
            continue
        entries.append(parsed)

    total_minutes = sum(entry.total_minutes for entry in entries)
    return CsvImportPreview(
        entries=entries,
        row_count=len(entries),
        skipped_rows=skipped_rows,
        total_minutes=total_minutes,
        total_cost=calculate_cost(total_minutes, hourly_rate),
    )


def _build_entry(customer_id: str, batch_id: str, parsed: ParsedCsvEntry, hourly_rate: Decimal) -> TimesheetEntry:
    return TimesheetEntry(
        customer_id=customer_id,
        import_batch_id=batch_id,
        entry_date=parsed.entry_date,
        start_time=parsed.start_time,
        end_time=parsed.end_time,
        total_minutes=parsed.total_minutes,
        task_description=parsed.task_description,
        requestor=parsed.requestor,
        hourly_rate_override=None,
        calculated_cost=calculate_cost(parsed.total_minutes, hourly_rate),
    )


def import_csv_entries(
    db: Session,
    *,
    customer_id: str,
    hourly_rate,
    entries: Sequence[ParsedCsvEntry],
    filename: str,
) -> ImportResult:
    """Persist an import batch and all of its entries, or nothing at all."""
    if not entries:
        raise ValidationError("No entries to import")
    rate = to_decimal(hourly_rate)
    if rate is None or rate < 0:
        raise ValidationError("hourly rate must be zero or greater")
    if db.get(Customer, customer_id) is None:
        raise NotFoundError("Customer not found")

    total_minutes = sum(entry.total_minutes for entry in entries)

    with unit_of_work(db):
        batch = ImportBatch(
            filename=filename,
            customer_id=customer_id,
            entries_count=len(entries),
            total_minutes=total_minutes,
            total_cost=calculate_cost(total_minutes, rate),
        )
        db.add(batch)
        db.flush()
        for parsed in entries:
            db.add(_build_entry(customer_id, batch.id, parsed, rate))
        db.flush()
        batch_id = batch.id

    created = (
        db.query(TimesheetEntry)
        .filter(TimesheetEntry.import_batch_id == batch_id)
        .order_by(TimesheetEntry.entry_date.asc(), TimesheetEntry.created_at.asc())
        .all()
    )
    logger.info("Imported %d entries from %s for customer %s (batch %s)", len(created), filename, customer_id, batch_id)
    return ImportResult(batch_id=batch_id, entries=[EntryRead.model_validate(entry) for entry in created])


def list_import_batches(db: Session, customer_id: str | None = None) -> List[ImportBatch]:
    query = db.query(ImportBatch)
    if customer_id:
        query = query.filter(ImportBatch.customer_id == customer_id)
    return query.order_by(ImportBatch.imported_at.desc()).all()
