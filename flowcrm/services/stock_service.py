"""Stock validation for pre-sales and manual stock adjustments."""
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from flowcrm.exceptions import CrmError, InsufficientStockError, InvalidInputError, NotFoundError
from flowcrm.models import AuditAction, Product, StockAdjustment, StockAdjustmentType
from flowcrm.services.audit_service import log_action, SYSTEM_USER
from flowcrm.utils.money import to_decimal

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500


def format_quantity(value) -> str:
    """10.000 -> '10', 2.500 -> '2.5'."""
    if isinstance(value, Decimal):
        return f'{value.normalize():f}'
    return str(value)


class SqlProductLookup:
    """
    Product lookup backed by a single batch query.

    Every product is loaded up front, so all lookups for one validation are
    answered from memory.
    """

    def __init__(self, session: Session, product_ids: Iterable[str], for_update: bool = False):
        ids = {pid for pid in product_ids if pid}
        self._products: Dict[str, Product] = {}
        if ids:
            query = session.query(Product).filter(Product.id.in_(ids))
            if for_update:
                query = query.with_for_update()
            self._products = {p.id: p for p in query.all()}

    def __call__(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)


def validate_stock(items: List[Dict[str, Any]], lookup: Callable[[str], Optional[Any]]) -> Dict[str, Any]:
    """
    Check every item against the available stock.

    Never raises for stock problems: all errors are collected so the caller
    can report them together.

    Args:
        items: dicts with ``product_id`` and ``quantity``
        lookup: callable returning an object with ``name`` and ``stock``
            for a product id, or None when the product does not exist

    Returns:
        dict with ``is_valid``, ``errors``, ``product_details`` and
        ``shortfalls`` (the details of the items that failed)
    """
    errors = []
    product_details = []
    shortfalls = []

    for item in items:
        product_id = item.get('product_id')
        product = lookup(product_id)

        if product is None:
            errors.append(f'Product not found: {product_id}')
            continue

        requested = to_decimal(item.get('quantity'), 'quantity')
        detail = {
            'product_id': product_id,
            'product_name': product.name,
            'available_stock': product.stock,
            'requested_quantity': requested,
        }
        product_details.append(detail)

        if requested <= 0:
            errors.append(f'Invalid quantity for "{product.name}": must be greater than 0')
            shortfalls.append(detail)
        elif product.stock < requested:
            errors.append(
                f'Insufficient stock for "{product.name}". '
                f'Available: {product.stock}, Requested: {format_quantity(requested)}'
            )
            shortfalls.append(detail)

    return {
        'is_valid': not errors,
        'errors': errors,
        'product_details': product_details,
        'shortfalls': shortfalls,
    }


def ensure_stock(items: List[Dict[str, Any]], lookup: Callable[[str], Optional[Any]]) -> Dict[str, Any]:
    """Run validate_stock and raise InsufficientStockError carrying every problem found."""
    result = validate_stock(items, lookup)
    if not result['is_valid']:
        raise InsufficientStockError(result['errors'], result['shortfalls'])
    return result


def _parse_adjustment(adjustment_type, quantity, reason):
    try:
        adjustment_type = StockAdjustmentType(adjustment_type)
    except ValueError:
        raise InvalidInputError('Invalid adjustment type. Must be "add" or "remove"')

    quantity = to_decimal(quantity, 'quantity')
    if quantity <= 0:
        raise InvalidInputError('Quantity must be a positive number')
    if quantity != quantity.to_integral_value():
        raise InvalidInputError('Quantity must be a whole number of units')

    reason = (reason or '').strip()
    if not reason:
        raise InvalidInputError('Reason is required for stock adjustments')
    if len(reason) > MAX_REASON_LENGTH:
        raise InvalidInputError(f'Reason must be {MAX_REASON_LENGTH} characters or less')

    return adjustment_type, int(quantity), reason


def apply_adjustment(
    session: Session,
    product: Product,
    adjustment_type,
    quantity,
    reason: str,
    user_name: str = SYSTEM_USER
) -> StockAdjustment:
    """
    Change a product's stock and record the adjustment.

    Only flushes; the caller owns the transaction.

    Raises:
        InvalidInputError: bad type, quantity or reason
        InsufficientStockError: removal would leave negative stock
    """
    adjustment_type, quantity, reason = _parse_adjustment(adjustment_type, quantity, reason)

    previous_stock = product.stock
    if adjustment_type is StockAdjustmentType.ADD:
        new_stock = previous_stock + quantity
    else:
        new_stock = previous_stock - quantity

    if new_stock < 0:
        message = (
            f'Insufficient stock for this operation. '
            f'Current stock: {previous_stock}, requested removal: {quantity}'
        )
        raise InsufficientStockError([message], [{
            'product_id': product.id,
            'product_name': product.name,
            'available_stock': previous_stock,
            'requested_quantity': quantity,
        }])

    product.stock = new_stock

    adjustment = StockAdjustment(
        product_id=product.id,
        adjustment_type=adjustment_type.value,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        user_name=user_name or SYSTEM_USER
    )
    session.add(adjustment)
    session.flush()

    log_action(
        session,
        AuditAction.STOCK_ADJUSTED,
        resource_type='product',
        resource_id=product.id,
        details={
            'adjustment_id': adjustment.id,
            'adjustment_type': adjustment_type.value,
            'quantity': quantity,
            'previous_stock': previous_stock,
            'new_stock': new_stock,
            'reason': reason,
        },
        user_name=user_name
    )

    return adjustment


def adjust_stock(
    session: Session,
    product_id: str,
    adjustment_type,
    quantity,
    reason: str,
    user_name: str = SYSTEM_USER
) -> StockAdjustment:
    """
    Apply a manual stock adjustment and commit it.

    Raises:
        NotFoundError: unknown product
        InvalidInputError / InsufficientStockError: see apply_adjustment
    """
    try:
        product = session.query(Product).filter(Product.id == product_id).with_for_update().first()
        if not product:
            raise NotFoundError('Product not found')

        adjustment = apply_adjustment(session, product, adjustment_type, quantity, reason, user_name)
        session.commit()
    except CrmError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(
        f"Stock adjusted: product={product_id} type={adjustment.adjustment_type} "
        f"{adjustment.previous_stock} -> {adjustment.new_stock}"
    )
    return adjustment


def get_adjustment_history(
    session: Session,
    product_id: Optional[str] = None,
    adjustment_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> List[StockAdjustment]:
    """Stock adjustments, newest first."""
    query = session.query(StockAdjustment)

    if product_id:
        query = query.filter(StockAdjustment.product_id == product_id)

    if adjustment_type:
        try:
            adjustment_type = StockAdjustmentType(adjustment_type)
        except ValueError:
            raise InvalidInputError('Invalid adjustment type. Must be "add" or "remove"')
        query = query.filter(StockAdjustment.adjustment_type == adjustment_type.value)

    return query.order_by(StockAdjustment.created_at.desc()).limit(limit).offset(offset).all()
