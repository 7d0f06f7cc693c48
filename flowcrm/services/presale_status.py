"""
Pre-sale status lifecycle.

draft -> pending -> approved -> converted, with cancellation allowed from any
non-terminal status. cancelled and converted are terminal.
"""
from typing import Callable, Optional

from flowcrm.exceptions import InvalidInputError, InvalidStatusTransitionError
from flowcrm.models.presale import PreSale, PreSaleStatus

ALLOWED_TRANSITIONS = {
    PreSaleStatus.DRAFT: frozenset({PreSaleStatus.PENDING, PreSaleStatus.CANCELLED}),
    PreSaleStatus.PENDING: frozenset({PreSaleStatus.APPROVED, PreSaleStatus.CANCELLED, PreSaleStatus.CONVERTED}),
    PreSaleStatus.APPROVED: frozenset({PreSaleStatus.CONVERTED, PreSaleStatus.CANCELLED}),
    PreSaleStatus.CANCELLED: frozenset(),
    PreSaleStatus.CONVERTED: frozenset(),
}


def parse_status(value) -> PreSaleStatus:
    """Accept a PreSaleStatus or its string value."""
    if isinstance(value, PreSaleStatus):
        return value
    try:
        return PreSaleStatus(value)
    except ValueError:
        valid = ', '.join(s.value for s in PreSaleStatus)
        raise InvalidInputError(f'Invalid status: {value}. Must be one of: {valid}')


def is_terminal(status) -> bool:
    return not ALLOWED_TRANSITIONS[parse_status(status)]


def validate_transition(current_status, new_status) -> bool:
    """
    Check a status change against the transition table.

    Returns:
        False for a self-transition (nothing to do), True otherwise.

    Raises:
        InvalidInputError: unknown status name
        InvalidStatusTransitionError: change not allowed
    """
    current = parse_status(current_status)
    new = parse_status(new_status)

    if current is new:
        return False

    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current.value, new.value)

    return True


def transition(presale: PreSale, new_status, stock_checker: Optional[Callable[[PreSale], None]] = None) -> bool:
    """
    Move a pre-sale to a new status.

    On conversion ``stock_checker`` is called with the pre-sale before the
    status changes; it raises InsufficientStockError when any item is short,
    in which case the pre-sale is left untouched.

    Returns:
        True when the status changed.
    """
    new = parse_status(new_status)
    if not validate_transition(presale.status, new):
        return False

    if new is PreSaleStatus.CONVERTED and stock_checker is not None:
        stock_checker(presale)

    presale.status = new.value
    return True
