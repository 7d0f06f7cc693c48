"""
Pre-sale line item and totals calculations.

Pure functions over Decimal values; nothing here touches the database.
Items are plain dicts with ``product_id``, ``quantity``, ``unit_price`` and an
optional fixed ``discount``.
"""
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional

from flowcrm.exceptions import InvalidInputError
from flowcrm.models.presale import DiscountType
from flowcrm.utils.money import HUNDRED, ZERO, round_money, to_decimal


class DiscountSpec(NamedTuple):
    """Global discount: a fixed amount or a percentage of the subtotal."""
    type: DiscountType
    value: Decimal

    @classmethod
    def parse(cls, discount_type: Optional[str], value: Any = None) -> 'DiscountSpec':
        """Build a spec from request values. Missing type means fixed, missing value means 0."""
        try:
            parsed_type = DiscountType(discount_type or DiscountType.FIXED.value)
        except ValueError:
            raise InvalidInputError(
                f'Invalid discount type: {discount_type}. Must be "fixed" or "percentage"'
            )

        parsed_value = ZERO if value in (None, '') else to_decimal(value, 'discount')
        if parsed_value < 0:
            raise InvalidInputError('Invalid discount: must be a positive number')
        if parsed_type is DiscountType.PERCENTAGE and parsed_value > HUNDRED:
            raise InvalidInputError('Percentage discount cannot exceed 100%')

        return cls(parsed_type, parsed_value)

    @classmethod
    def none(cls) -> 'DiscountSpec':
        return cls(DiscountType.FIXED, ZERO)


def _non_negative(value, field):
    number = to_decimal(value, field)
    if number < 0:
        raise InvalidInputError(f'Invalid {field}: must be a positive number')
    return number


def compute_line(quantity, unit_price, discount=ZERO) -> Dict[str, Decimal]:
    """
    Totals for a single line.

    line_total = quantity * unit_price
    line_total_with_discount = max(0, line_total - discount)

    Zero quantity is accepted here; stock validation rejects it later.
    """
    quantity = _non_negative(quantity, 'quantity')
    unit_price = _non_negative(unit_price, 'unit price')
    discount = _non_negative(ZERO if discount in (None, '') else discount, 'discount')

    line_total = quantity * unit_price

    return {
        'quantity': quantity,
        'unit_price': round_money(unit_price),
        'discount': round_money(discount),
        'line_total': round_money(line_total),
        'line_total_with_discount': round_money(max(ZERO, line_total - discount)),
    }


def apply_discount(subtotal, discount_spec: DiscountSpec) -> Dict[str, Decimal]:
    """Apply a global discount, capping it at the subtotal."""
    subtotal = _non_negative(subtotal, 'subtotal')

    if discount_spec.type is DiscountType.PERCENTAGE:
        if discount_spec.value > HUNDRED:
            raise InvalidInputError('Percentage discount cannot exceed 100%')
        discount_amount = subtotal * discount_spec.value / HUNDRED
    else:
        discount_amount = discount_spec.value

    subtotal = round_money(subtotal)
    discount_amount = round_money(min(discount_amount, subtotal))

    return {
        'subtotal': subtotal,
        'discount_amount': discount_amount,
        'total': round_money(max(ZERO, subtotal - discount_amount)),
    }


def compute_totals(items: List[Dict[str, Any]], discount_spec: Optional[DiscountSpec] = None) -> Dict[str, Any]:
    """
    Subtotal, global discount and total for a list of items.

    Returns:
        dict with ``subtotal``, ``discount_amount``, ``total`` and one
        ``item_details`` entry per input item, in input order.

    Raises:
        InvalidInputError: empty items or any invalid amount.
    """
    if not items:
        raise InvalidInputError('Items array cannot be empty')

    discount_spec = discount_spec or DiscountSpec.none()

    item_details = []
    subtotal = ZERO
    for item in items:
        line = compute_line(item.get('quantity'), item.get('unit_price'), item.get('discount'))
        line['product_id'] = item.get('product_id')
        item_details.append(line)
        subtotal += line['line_total_with_discount']

    result = apply_discount(subtotal, discount_spec)
    result['item_details'] = item_details
    return result


def percentage_to_fixed(subtotal, percentage) -> Decimal:
    """Fixed amount equivalent to a percentage of the subtotal."""
    subtotal = to_decimal(subtotal, 'subtotal')
    if subtotal < 0:
        raise InvalidInputError('Invalid subtotal: must be a non-negative number')

    percentage = to_decimal(percentage, 'percentage')
    if percentage < 0 or percentage > HUNDRED:
        raise InvalidInputError('Invalid percentage: must be between 0 and 100')

    return round_money(subtotal * percentage / HUNDRED)


def fixed_to_percentage(subtotal, fixed_value) -> Decimal:
    """Percentage of the subtotal a fixed amount represents (0 on a zero subtotal)."""
    subtotal = to_decimal(subtotal, 'subtotal')
    if subtotal < 0:
        raise InvalidInputError('Invalid subtotal: must be a non-negative number')

    fixed_value = to_decimal(fixed_value, 'fixed discount')
    if fixed_value < 0:
        raise InvalidInputError('Invalid fixed discount: must be a non-negative number')

    if subtotal == 0:
        return round_money(ZERO)

    return round_money(min(fixed_value, subtotal) / subtotal * HUNDRED)


def discount_with_conversion(subtotal, value, discount_type=DiscountType.FIXED) -> Dict[str, Decimal]:
    """
    Both representations of a discount plus the amount actually applied.

    The applied amount never exceeds the subtotal.
    """
    if not isinstance(discount_type, DiscountType):
        discount_type = DiscountSpec.parse(discount_type, value).type

    subtotal = to_decimal(subtotal, 'subtotal')
    value = ZERO if value in (None, '') else to_decimal(value, 'discount')

    if discount_type is DiscountType.PERCENTAGE:
        fixed_value = percentage_to_fixed(subtotal, value)
        return {
            'fixed_value': fixed_value,
            'percentage': round_money(value),
            'discount_amount': fixed_value,
        }

    percentage = fixed_to_percentage(subtotal, value)
    return {
        'fixed_value': round_money(value),
        'percentage': percentage,
        'discount_amount': round_money(min(value, max(subtotal, ZERO))),
    }
