# discount_engine/exceptions.py
from decimal import Decimal
from typing import List, NamedTuple


class FieldError(NamedTuple):
    """A single field-level validation message"""
    field: str
    message: str


class DiscountEngineError(Exception):
    """Base class for pricing engine errors"""


class ValidationError(DiscountEngineError):
    """Rule data violates one or more invariants"""

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors))

    def as_dict(self) -> dict:
        """Group messages per field for the admin surface"""
        grouped = {}
        for error in self.errors:
            grouped.setdefault(error.field, []).append(error.message)
        return grouped


class RuleNotFoundError(DiscountEngineError):
    def __init__(self, rule_id):
        self.rule_id = rule_id
        super().__init__(f"Discount rule {rule_id} not found")


class RuleInUseError(ValidationError):
    """Rule cannot be deleted while order audit records reference it"""

    def __init__(self, rule_id):
        self.rule_id = rule_id
        super().__init__([FieldError('id', 'Rule is referenced by order audit records')])


class StoreUnavailable(DiscountEngineError):
    """Persistence layer failed; never retried by the engine"""

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        message = f"Store unavailable during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class StaleDiscountError(DiscountEngineError):
    """Revalidated total differs from the total shown to the customer"""

    def __init__(self, displayed_total: Decimal, revalidated_total: Decimal):
        self.displayed_total = displayed_total
        self.revalidated_total = revalidated_total
        super().__init__(
            f"Price changed since it was displayed: "
            f"displayed={displayed_total} current={revalidated_total}"
        )


class PricingUnavailable(DiscountEngineError):
    """Generic customer-facing pricing failure"""

    def __init__(self, message: str = "Pricing is temporarily unavailable"):
        super().__init__(message)


def public_error(error: Exception) -> DiscountEngineError:
    """Map an engine error to what a customer-facing surface may show"""
    if isinstance(error, StaleDiscountError):
        return PricingUnavailable("Prices in your cart have changed, please review your order")
    return PricingUnavailable()
