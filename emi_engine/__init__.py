"""
EMI Engine

Installment loan repayment engine: EMI calculation, amortization schedules,
payment recording with status transitions, late fees, overdue sweeping and
dashboard rollups. All financial math uses Decimal.
"""

__version__ = "1.0.0"
