"""
Reporting, dashboard and batch job endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends

from .dependencies import EmiSystem, get_emi_system, to_http_exception, parse_date
from .schemas import SweepRequest
from ..currency import format_amount


router = APIRouter()


def _as_of(today: Optional[str]) -> date:
    return parse_date(today) if today else date.today()


@router.get("/loans/{loan_id}/summary")
async def get_loan_summary(
    loan_id: str,
    today: Optional[str] = None,
    system: EmiSystem = Depends(get_emi_system)
):
    """Repayment progress of one loan"""
    try:
        return system.summary.per_loan_summary(loan_id, _as_of(today)).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/loans/{loan_id}/outstanding")
async def get_outstanding_amount(
    loan_id: str,
    system: EmiSystem = Depends(get_emi_system)
):
    return {
        "loan_id": loan_id,
        "outstanding_amount": format_amount(system.summary.outstanding_amount(loan_id))
    }


@router.get("/totals")
async def get_totals(system: EmiSystem = Depends(get_emi_system)):
    """Collected and pending EMI totals across all loans"""
    return {
        "total_collected": format_amount(system.summary.total_collected()),
        "total_pending": format_amount(system.summary.total_pending())
    }


@router.get("/overdue")
async def get_overdue_statistics(
    today: Optional[str] = None,
    system: EmiSystem = Depends(get_emi_system)
):
    try:
        return system.summary.overdue_statistics(_as_of(today)).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/overdue/installments")
async def get_overdue_installments(
    customer_id: Optional[str] = None,
    today: Optional[str] = None,
    system: EmiSystem = Depends(get_emi_system)
):
    """Unpaid installments past their due date, optionally for one customer"""
    try:
        as_of = _as_of(today)
        if customer_id:
            installments = system.summary.overdue_installments_for_customer(customer_id, as_of)
        else:
            installments = system.summary.overdue_installments(as_of)
    except ValueError as e:
        raise to_http_exception(e)

    return {"installments": [i.to_response() for i in installments]}


@router.get("/customers/{customer_id}/summary")
async def get_customer_summary(
    customer_id: str,
    today: Optional[str] = None,
    system: EmiSystem = Depends(get_emi_system)
):
    try:
        return system.summary.customer_emi_summary(customer_id, _as_of(today)).to_dict()
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/upcoming")
async def get_upcoming_emis(
    days_ahead: int = 7,
    today: Optional[str] = None,
    system: EmiSystem = Depends(get_emi_system)
):
    """Installments due within the next days_ahead days"""
    try:
        installments = system.summary.upcoming_emis(days_ahead, _as_of(today))
    except ValueError as e:
        raise to_http_exception(e)

    return {
        "days_ahead": days_ahead,
        "installments": [i.to_response() for i in installments]
    }


@router.post("/sweep")
async def run_overdue_sweep(
    request: SweepRequest,
    system: EmiSystem = Depends(get_emi_system)
):
    """Manually trigger the overdue sweep"""
    try:
        as_of = _as_of(request.today)
        count = system.sweeper.sweep(as_of)
    except ValueError as e:
        raise to_http_exception(e)

    return {
        "sweep_date": as_of.isoformat(),
        "overdue_marked": count,
        "message": "Overdue sweep completed"
    }
