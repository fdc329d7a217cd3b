from enum import Enum


class InvoiceStatus(str, Enum):
    draft = "draft"
    sent = "sent"
    paid = "paid"
    overdue = "overdue"
    credited = "credited"


class InvoiceKind(str, Enum):
    rent = "rent"
    usage = "usage"
    manual = "manual"


class CreditNoteStatus(str, Enum):
    draft = "draft"
    issued = "issued"
    applied = "applied"


class CreditApplicationType(str, Enum):
    invoice_credit = "invoice_credit"
    refund = "refund"
    manual = "manual"


class DocumentSeries(str, Enum):
    invoice = "invoice"
    credit_note = "credit_note"
