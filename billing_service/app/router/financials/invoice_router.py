from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_db
from shared.core.schemas import JsonOutResult
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...core.billing_period import month_of, previous_month_of
from ...core.clock import resolve_clock
from ...crud.financials import invoices_crud as crud
from ...crud.financials.rent_invoice_generator import generate_rent_invoices
from ...crud.financials.usage_invoice_generator import generate_usage_invoices
from ...schemas.financials.invoices_schemas import (
    GenerationResult, InvoiceGenerationRequest, InvoiceOut, InvoicePaymentRequest,
    InvoicesRequest, InvoicesResponse
)

router = APIRouter(
    prefix="/api/invoices",
    tags=["invoices"]
)


#-----------------------------------------------------------------
@router.get("", response_model=JsonOutResult[InvoicesResponse])
def get_invoices(
        params: InvoicesRequest = Depends(),
        db: Session = Depends(get_db)):
    return success_response(crud.get_invoices(db, params))


@router.get("/{invoice_id}", response_model=JsonOutResult[InvoiceOut])
def get_invoice(invoice_id: UUID, db: Session = Depends(get_db)):
    return success_response(crud.to_invoice_out(crud.get_invoice_by_id(db, invoice_id)))


# ---------------- Generation ----------------
@router.post("/generate/rent", response_model=JsonOutResult[GenerationResult])
def generate_rent(
        request: InvoiceGenerationRequest,
        db: Session = Depends(get_db)):
    today = resolve_clock(db).today()
    result = generate_rent_invoices(db, request.invoice_month or month_of(today), today=today)
    return success_response(result, "Rent invoices generated", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/generate/usage", response_model=JsonOutResult[GenerationResult])
def generate_usage(
        request: InvoiceGenerationRequest,
        db: Session = Depends(get_db)):
    today = resolve_clock(db).today()
    result = generate_usage_invoices(db, request.invoice_month or previous_month_of(today), today=today)
    return success_response(result, "Usage invoices generated", AppStatusCode.OPERATION_SUCCESSFUL)


# ---------------- Status transitions ----------------
@router.post("/{invoice_id}/send", response_model=JsonOutResult[InvoiceOut])
def send_invoice(invoice_id: UUID, db: Session = Depends(get_db)):
    invoice = crud.mark_invoice_sent(db, invoice_id)
    return success_response(crud.to_invoice_out(invoice), "Invoice sent", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{invoice_id}/pay", response_model=JsonOutResult[InvoiceOut])
def pay_invoice(
        invoice_id: UUID,
        request: InvoicePaymentRequest,
        db: Session = Depends(get_db)):
    paid_at = request.paid_at or resolve_clock(db).now()
    invoice = crud.mark_invoice_paid(db, invoice_id, paid_at)
    return success_response(crud.to_invoice_out(invoice), "Invoice paid", AppStatusCode.OPERATION_SUCCESSFUL)
