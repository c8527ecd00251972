"""
EMI payment endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .dependencies import EmiSystem, get_emi_system, to_http_exception, parse_amount, parse_date
from .schemas import RecordPaymentRequest


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_payment(
    request: RecordPaymentRequest,
    system: EmiSystem = Depends(get_emi_system)
):
    """Record a payment against an installment"""
    try:
        receipt = system.payment_recorder.record_payment(
            installment_id=request.installment_id,
            amount=parse_amount(request.amount),
            payment_date=parse_date(request.payment_date),
            method=request.method,
            paid_by=request.paid_by,
            transaction_reference=request.transaction_reference,
            remarks=request.remarks
        )
    except ValueError as e:
        raise to_http_exception(e)

    return receipt.to_response()


@router.get("/statistics")
async def get_payment_statistics(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    system: EmiSystem = Depends(get_emi_system)
):
    """Count and total of payments in a date range (default: the last month)"""
    try:
        stats = system.payment_recorder.payment_statistics(
            start_date=parse_date(start_date) if start_date else None,
            end_date=parse_date(end_date) if end_date else None
        )
    except ValueError as e:
        raise to_http_exception(e)

    return stats.to_dict()


@router.get("/loan/{loan_id}")
async def get_payment_history(
    loan_id: str,
    system: EmiSystem = Depends(get_emi_system)
):
    """Payments of a loan, newest first"""
    payments = system.payment_recorder.get_payment_history(loan_id)
    return {
        "loan_id": loan_id,
        "payments": [p.to_response() for p in payments]
    }


@router.get("/reference/{transaction_reference}")
async def get_payment_by_reference(
    transaction_reference: str,
    system: EmiSystem = Depends(get_emi_system)
):
    try:
        return system.payment_recorder.get_payment_by_reference(transaction_reference).to_response()
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/{payment_id}")
async def get_payment(
    payment_id: str,
    system: EmiSystem = Depends(get_emi_system)
):
    try:
        return system.payment_recorder.get_payment(payment_id).to_response()
    except ValueError as e:
        raise to_http_exception(e)
