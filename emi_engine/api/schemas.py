"""
Pydantic models for API requests

Amounts travel as decimal strings and dates as ISO strings; both are parsed
in the endpoint so a bad value surfaces as a 400 with the engine's message.
"""

from pydantic import BaseModel, Field
from typing import Optional


class GenerateScheduleRequest(BaseModel):
    """Disbursement trigger"""
    loan_id: str
    customer_id: str
    principal: str = Field(..., description="Decimal amount as string")
    annual_rate_percent: str = Field(..., description="Annual rate in percent, e.g. \"12\"")
    tenure_months: int
    start_date: str  # ISO date string, due date of the first EMI


class RecordPaymentRequest(BaseModel):
    """Payment intake"""
    installment_id: str
    amount: str = Field(..., description="Decimal amount as string")
    payment_date: str  # ISO date string
    method: str = Field(..., description="CASH, CHEQUE, NEFT, RTGS, UPI, DEBIT_CARD, CREDIT_CARD, NET_BANKING or DEMAND_DRAFT")
    paid_by: str = Field(..., description="ID of the user recording the payment")
    transaction_reference: Optional[str] = None
    remarks: Optional[str] = None


class CalculateEmiRequest(BaseModel):
    principal: str
    annual_rate_percent: str
    tenure_months: int


class LateFeeRequest(BaseModel):
    emi_amount: str
    due_date: str
    payment_date: str
    late_fee_percent_per_day: Optional[str] = None  # configured policy when omitted
    grace_days: Optional[int] = None


class SweepRequest(BaseModel):
    today: Optional[str] = None  # ISO date string, defaults to today
