from sqlalchemy.orm import Session

from ...enum.financials_enum import DocumentSeries
from ...models.financials.invoices import DocumentCounter

SERIES_PREFIX = {
    DocumentSeries.invoice: "INV",
    DocumentSeries.credit_note: "CN",
}


def _next_value(db: Session, series: DocumentSeries) -> int:
    # Row lock keeps two writers from drawing the same value on PostgreSQL.
    # The increment is only flushed: it commits or rolls back together with
    # the document it numbers, so an aborted insert leaves no gap.
    counter = (
        db.query(DocumentCounter)
        .filter(DocumentCounter.series == series.value)
        .with_for_update()
        .first()
    )
    if not counter:
        counter = DocumentCounter(series=series.value, last_value=0)
        db.add(counter)

    counter.last_value = (counter.last_value or 0) + 1
    db.flush()
    return counter.last_value


def format_number(series: DocumentSeries, value: int) -> str:
    return f"{SERIES_PREFIX[series]}-{value:06d}"


def next_invoice_number(db: Session) -> str:
    return format_number(DocumentSeries.invoice, _next_value(db, DocumentSeries.invoice))


def next_credit_note_number(db: Session) -> str:
    return format_number(DocumentSeries.credit_note, _next_value(db, DocumentSeries.credit_note))
