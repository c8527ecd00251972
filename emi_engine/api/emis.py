"""
EMI schedule and calculator endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import EmiSystem, get_emi_system, to_http_exception, parse_amount, parse_date
from .schemas import GenerateScheduleRequest, CalculateEmiRequest, LateFeeRequest
from ..currency import format_amount


router = APIRouter()


@router.post("/schedules", status_code=status.HTTP_201_CREATED)
async def generate_schedule(
    request: GenerateScheduleRequest,
    system: EmiSystem = Depends(get_emi_system)
):
    """Generate the EMI schedule for a disbursed loan"""
    try:
        installments = system.schedule_generator.generate(
            loan_id=request.loan_id,
            customer_id=request.customer_id,
            principal=parse_amount(request.principal),
            annual_rate_percent=parse_amount(request.annual_rate_percent),
            tenure_months=request.tenure_months,
            start_date=parse_date(request.start_date)
        )
    except ValueError as e:
        raise to_http_exception(e)

    return {
        "loan_id": request.loan_id,
        "installment_count": len(installments),
        "emi_amount": format_amount(installments[0].emi_amount),
        "installments": [i.to_response() for i in installments],
        "message": "EMI schedule generated successfully"
    }


@router.get("/schedules/{loan_id}")
async def get_schedule(
    loan_id: str,
    system: EmiSystem = Depends(get_emi_system)
):
    """Get a loan's schedule in EMI number order"""
    try:
        installments = system.schedule_generator.get_schedule(loan_id)
    except ValueError as e:
        raise to_http_exception(e)

    return {
        "loan_id": loan_id,
        "installments": [i.to_response() for i in installments]
    }


@router.get("/schedules/{loan_id}/next")
async def get_next_pending(
    loan_id: str,
    system: EmiSystem = Depends(get_emi_system)
):
    """Get the earliest unpaid installment of a loan"""
    try:
        installment = system.schedule_generator.next_pending(loan_id)
        all_paid = installment is None
    except ValueError as e:
        raise to_http_exception(e)

    return {
        "loan_id": loan_id,
        "all_paid": all_paid,
        "installment": installment.to_response() if installment else None
    }


@router.get("/installments/{installment_id}")
async def get_installment(
    installment_id: str,
    system: EmiSystem = Depends(get_emi_system)
):
    """Get one installment"""
    try:
        return system.schedule_generator.get_installment(installment_id).to_response()
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/customers/{customer_id}")
async def get_customer_installments(
    customer_id: str,
    pending_only: bool = False,
    system: EmiSystem = Depends(get_emi_system)
):
    """Get a customer's installments across loans, ordered by due date"""
    if pending_only:
        installments = system.schedule_generator.get_pending_for_customer(customer_id)
    else:
        installments = system.schedule_generator.get_customer_schedule(customer_id)

    return {
        "customer_id": customer_id,
        "installments": [i.to_response() for i in installments]
    }


@router.post("/calculate")
async def calculate_emi(
    request: CalculateEmiRequest,
    system: EmiSystem = Depends(get_emi_system)
):
    """EMI, total interest and total payable for a prospective loan"""
    try:
        quote = system.calculator.quote(
            parse_amount(request.principal),
            parse_amount(request.annual_rate_percent),
            request.tenure_months
        )
    except ValueError as e:
        raise to_http_exception(e)

    return quote.to_dict()


@router.post("/late-fee")
async def calculate_late_fee(
    request: LateFeeRequest,
    system: EmiSystem = Depends(get_emi_system)
):
    """Late fee for paying an EMI on a given date"""
    try:
        rate = request.late_fee_percent_per_day or system.config.late_fee_percent_per_day
        grace_days = request.grace_days if request.grace_days is not None else system.config.grace_period_days
        due_date = parse_date(request.due_date)
        payment_date = parse_date(request.payment_date)
        calculator = system.late_fee_calculator

        fee = calculator.calculate_late_fee(
            parse_amount(request.emi_amount), due_date, payment_date,
            parse_amount(rate), grace_days
        )
        chargeable_days = calculator.chargeable_late_days(due_date, payment_date, grace_days)
    except ValueError as e:
        raise to_http_exception(e)

    return {
        "late_fee": format_amount(fee),
        "chargeable_days": chargeable_days,
        "is_late": calculator.is_late(due_date, payment_date, grace_days)
    }
