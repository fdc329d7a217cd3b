from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_db
from shared.core.schemas import JsonOutResult
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...core.clock import resolve_clock
from ...crud.financials import credit_ledger as ledger
from ...crud.financials import credit_notes_crud as crud
from ...schemas.financials.credit_notes_schemas import (
    AvailableCreditOut, CreditApplicationOut, CreditApplicationRequest, CreditNoteCreate,
    CreditNoteOut, CreditWithoutInvoiceRequest, CustomerCreditOut, UnappliedCreditNoteOut
)

router = APIRouter(
    prefix="/api/credit-notes",
    tags=["credit-notes"]
)


@router.post("", response_model=JsonOutResult[CreditNoteOut])
def create_credit_note(payload: CreditNoteCreate, db: Session = Depends(get_db)):
    if payload.credit_date is None:
        payload.credit_date = resolve_clock(db).today()
    note = crud.issue_credit_note(db, payload)
    return success_response(
        CreditNoteOut.model_validate(note), "Credit note issued", AppStatusCode.CREATED_SUCCESSFULLY)


@router.get("/unapplied", response_model=JsonOutResult[List[UnappliedCreditNoteOut]])
def get_unapplied_credit_notes(db: Session = Depends(get_db)):
    return success_response(ledger.get_unapplied_credit_notes(db))


@router.get("/by-customer", response_model=JsonOutResult[List[CustomerCreditOut]])
def get_credit_by_customer(db: Session = Depends(get_db)):
    return success_response(ledger.get_credit_by_customer(db))


@router.get("/{credit_note_id}/available", response_model=JsonOutResult[AvailableCreditOut])
def get_available_credit(credit_note_id: UUID, db: Session = Depends(get_db)):
    return success_response(ledger.get_available_credit(db, credit_note_id))


@router.get("/{credit_note_id}/applications", response_model=JsonOutResult[List[CreditApplicationOut]])
def get_applications(credit_note_id: UUID, db: Session = Depends(get_db)):
    applications = ledger.get_applications(db, credit_note_id)
    return success_response([CreditApplicationOut.model_validate(a) for a in applications])


# ---------------- Applications ----------------
@router.post("/{credit_note_id}/apply", response_model=JsonOutResult[CreditApplicationOut])
def apply_credit(
        credit_note_id: UUID,
        request: CreditApplicationRequest,
        db: Session = Depends(get_db)):
    application = ledger.apply_credit_to_invoice(
        db, credit_note_id, request.invoice_id, request.amount,
        application_date=request.application_date or resolve_clock(db).today())
    return success_response(
        CreditApplicationOut.model_validate(application), "Credit applied", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{credit_note_id}/refund", response_model=JsonOutResult[CreditApplicationOut])
def refund_credit(
        credit_note_id: UUID,
        request: CreditWithoutInvoiceRequest,
        db: Session = Depends(get_db)):
    application = ledger.record_refund(
        db, credit_note_id, request.amount, notes=request.notes,
        application_date=request.application_date or resolve_clock(db).today())
    return success_response(
        CreditApplicationOut.model_validate(application), "Refund recorded", AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{credit_note_id}/manual", response_model=JsonOutResult[CreditApplicationOut])
def apply_credit_manually(
        credit_note_id: UUID,
        request: CreditWithoutInvoiceRequest,
        db: Session = Depends(get_db)):
    application = ledger.record_manual_application(
        db, credit_note_id, request.amount, notes=request.notes,
        application_date=request.application_date or resolve_clock(db).today())
    return success_response(
        CreditApplicationOut.model_validate(application), "Manual application recorded",
        AppStatusCode.OPERATION_SUCCESSFUL)
