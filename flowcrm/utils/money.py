"""
Money and percentage arithmetic.

All values are handled as Decimal. Intermediate results keep full precision;
anything returned to a caller as a money or percentage figure is rounded to
2 decimal places, half-up.

Margin is profit as a percentage of the selling price and lives in [0, 100).
Markup is profit as a percentage of cost and has no upper bound.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flowcrm.exceptions import InvalidInputError

CENT = Decimal('0.01')
ZERO = Decimal('0')
HUNDRED = Decimal('100')


def to_decimal(value, field='value'):
    """
    Convert request input (int, float, str or Decimal) to Decimal.

    Raises:
        InvalidInputError: if the value is empty, not numeric, NaN or infinite.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f'Invalid {field}: must be a valid number')

    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidInputError(f'Invalid {field}: must be a valid number')

    if not number.is_finite():
        raise InvalidInputError(f'Invalid {field}: must be a valid number')

    return number


def round_money(value):
    """Round to 2 decimal places, half-up (1.005 -> 1.01)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _positive(value, field):
    number = to_decimal(value, field)
    if number <= 0:
        raise InvalidInputError(f'Invalid {field}: must be greater than zero')
    return number


def validate_margin_percentage(margin):
    """Margin must be in [0, 100); 100 would need an infinite price."""
    margin = to_decimal(margin, 'margin percentage')
    if margin < 0 or margin >= HUNDRED:
        raise InvalidInputError('Invalid margin percentage: must be between 0 and 99.99')
    return margin


def validate_markup_percentage(markup):
    """Markup must be zero or positive."""
    markup = to_decimal(markup, 'markup percentage')
    if markup < 0:
        raise InvalidInputError('Invalid markup percentage: must be greater than or equal to 0')
    return markup


def margin_from_cost_and_price(cost, price):
    """
    Margin of a selling price over its cost.

    Formula: margin = (price - cost) / price * 100

    Raises:
        InvalidInputError: cost or price not positive, or price below cost.
    """
    cost = _positive(cost, 'cost')
    price = _positive(price, 'selling price')
    if price < cost:
        raise InvalidInputError('Selling price cannot be less than cost (would result in negative margin)')

    profit = price - cost
    return {
        'cost': round_money(cost),
        'selling_price': round_money(price),
        'profit': round_money(profit),
        'margin_percentage': round_money(profit / price * HUNDRED),
    }


def markup_from_cost_and_price(cost, price):
    """
    Markup of a selling price over its cost.

    Formula: markup = (price - cost) / cost * 100

    A price below cost is accepted and yields a negative markup.
    """
    cost = _positive(cost, 'cost')
    price = _positive(price, 'selling price')

    profit = price - cost
    return {
        'cost': round_money(cost),
        'selling_price': round_money(price),
        'profit': round_money(profit),
        'markup_percentage': round_money(profit / cost * HUNDRED),
    }


def price_from_target_margin(cost, margin):
    """Selling price reaching a target margin: cost / (1 - margin/100). Unrounded."""
    cost = _positive(cost, 'cost')
    margin = validate_margin_percentage(margin)
    return cost / (1 - margin / HUNDRED)


def price_from_target_markup(cost, markup):
    """Selling price reaching a target markup: cost * (1 + markup/100). Unrounded."""
    cost = _positive(cost, 'cost')
    markup = validate_markup_percentage(markup)
    return cost * (1 + markup / HUNDRED)


def margin_to_markup(margin):
    """Convert a margin percentage to the equivalent markup percentage."""
    margin = validate_margin_percentage(margin)
    if margin == 0:
        return round_money(ZERO)
    return round_money(margin / (HUNDRED - margin) * HUNDRED)


def markup_to_margin(markup):
    """Convert a markup percentage to the equivalent margin percentage."""
    markup = validate_markup_percentage(markup)
    if markup == 0:
        return round_money(ZERO)
    return round_money(markup / (HUNDRED + markup) * HUNDRED)
