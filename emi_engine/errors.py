"""
Error Taxonomy

All engine failures are synchronous and surface to the caller of the
operation. They subclass ValueError so callers that already treat bad
input as ValueError keep working.
"""


class EmiEngineError(ValueError):
    """Base class for EMI engine errors"""


class InvalidInput(EmiEngineError):
    """Bad calculator or schedule arguments"""


class NotFound(EmiEngineError):
    """Unknown loan schedule, installment or payment"""


class AlreadyExists(EmiEngineError):
    """A schedule was already generated for the loan"""


class AlreadyPaid(EmiEngineError):
    """The installment is already fully paid"""


class InvalidAmount(EmiEngineError):
    """Payment amount is zero or negative"""


class ReferenceRequired(EmiEngineError):
    """Payment method needs a transaction reference"""


class DuplicateReference(EmiEngineError):
    """Transaction reference is already used by another payment"""


# Messages shared by the recorder, the generator and the API layer
EMI_NOT_FOUND = "EMI schedule not found"
EMI_ALREADY_PAID = "EMI has already been paid"
EMI_SCHEDULE_NOT_FOUND = "EMI schedule not found for the loan"
EMI_ALREADY_EXISTS = "EMI schedule already exists for this loan"
PAYMENT_NOT_FOUND = "Payment record not found"
INVALID_PAYMENT_AMOUNT = "Invalid payment amount"
TRANSACTION_REFERENCE_REQUIRED = "Transaction reference is required for this payment method"
DUPLICATE_TRANSACTION_REFERENCE = "Transaction reference already exists"
