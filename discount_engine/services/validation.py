# discount_engine/services/validation.py
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
import pydantic
from ..exceptions import FieldError, ValidationError
from ..models.discount import ApplicableTo, DiscountType
from ..utils.time import ensure_utc

MIN_PERCENTAGE = Decimal(5)
MAX_PERCENTAGE = Decimal(90)

USAGE_LIMIT_FIELDS = ('max_uses_per_customer', 'max_total_uses', 'min_purchase_amount')

# Fields that only make sense for one discount type
TYPE_SPECIFIC_FIELDS = {
    'percentage_value': (DiscountType.PERCENTAGE, 'Percentage value', 'percentage'),
    'buy_quantity': (DiscountType.BUY_X_GET_Y, 'Buy quantity', 'buy-X-get-Y'),
    'get_quantity': (DiscountType.BUY_X_GET_Y, 'Get quantity', 'buy-X-get-Y'),
}

_datetime_adapter = pydantic.TypeAdapter(datetime)

def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None

def _to_datetime(value: Any) -> Optional[datetime]:
    """Parse the way DiscountRule does, None when unparseable"""
    if not isinstance(value, (datetime, str)):
        return None
    try:
        return ensure_utc(_datetime_adapter.validate_python(value))
    except pydantic.ValidationError:
        return None

def _enum_value(value: Any) -> Any:
    return getattr(value, 'value', value)

def validate_rule(data: Dict[str, Any]) -> List[FieldError]:
    """Collect every invariant violation of a rule payload"""
    errors: List[FieldError] = []

    name = data.get('name')
    if not isinstance(name, str) or not name.strip():
        errors.append(FieldError('name', 'Discount name is required'))

    discount_type = _enum_value(data.get('discount_type'))
    if not discount_type:
        errors.append(FieldError('discount_type', 'Discount type is required'))
    elif discount_type not in {t.value for t in DiscountType}:
        errors.append(FieldError(
            'discount_type',
            'Invalid discount type. Must be percentage, fixed_amount, or buy_x_get_y'
        ))

    if data.get('discount_value') is None:
        errors.append(FieldError('discount_value', 'Discount value is required'))
    else:
        discount_value = _to_decimal(data['discount_value'])
        if discount_value is None:
            errors.append(FieldError('discount_value', 'Discount value must be a number'))
        elif discount_value < 0:
            errors.append(FieldError('discount_value', 'Discount value must be non-negative'))

    if discount_type == DiscountType.PERCENTAGE.value:
        if data.get('percentage_value') is None:
            errors.append(FieldError(
                'percentage_value', 'Percentage value is required for percentage discounts'
            ))
        else:
            percentage = _to_decimal(data['percentage_value'])
            if percentage is None or not MIN_PERCENTAGE <= percentage <= MAX_PERCENTAGE:
                errors.append(FieldError(
                    'percentage_value', 'Percentage value must be between 5% and 90%'
                ))

    if discount_type == DiscountType.BUY_X_GET_Y.value:
        for field, label in (('buy_quantity', 'Buy'), ('get_quantity', 'Get')):
            quantity = data.get(field)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
                errors.append(FieldError(
                    field, f'{label} quantity must be greater than 0 for buy-X-get-Y discounts'
                ))

    if discount_type in {t.value for t in DiscountType}:
        for field, (owner, label, kind) in TYPE_SPECIFIC_FIELDS.items():
            if owner.value != discount_type and data.get(field) is not None:
                errors.append(FieldError(field, f'{label} is only allowed for {kind} discounts'))

    start_date = end_date = None
    if data.get('start_date') is None:
        errors.append(FieldError('start_date', 'Start date is required'))
    else:
        start_date = _to_datetime(data['start_date'])
        if start_date is None:
            errors.append(FieldError('start_date', 'Start date is not a valid date'))

    if data.get('end_date') is None:
        errors.append(FieldError('end_date', 'End date is required'))
    else:
        end_date = _to_datetime(data['end_date'])
        if end_date is None:
            errors.append(FieldError('end_date', 'End date is not a valid date'))

    if start_date and end_date and start_date >= end_date:
        errors.append(FieldError('start_date', 'Start date must be before end date'))

    applicable_to = _enum_value(data.get('applicable_to'))
    if not applicable_to:
        errors.append(FieldError('applicable_to', 'Applicable to field is required'))
    elif applicable_to not in {a.value for a in ApplicableTo}:
        errors.append(FieldError('applicable_to', 'Invalid applicable_to value'))

    priority = data.get('priority')
    if priority is not None and (not isinstance(priority, int) or isinstance(priority, bool)):
        errors.append(FieldError('priority', 'Priority must be an integer'))

    for field in USAGE_LIMIT_FIELDS:
        value = data.get(field)
        if value is None:
            continue
        amount = _to_decimal(value)
        if amount is None or amount < 0:
            errors.append(FieldError(field, f'{field} must be a non-negative number'))

    return errors

def ensure_valid_rule(data: Dict[str, Any]) -> None:
    """Raise ValidationError carrying every violation, if any"""
    errors = validate_rule(data)
    if errors:
        raise ValidationError(errors)
