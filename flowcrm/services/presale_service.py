"""Pre-sale service: persistence of pre-sales and their status lifecycle."""
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from flowcrm.blueprints.metrics import presale_status_transitions_total
from flowcrm.exceptions import ConflictError, CrmError, InvalidInputError, NotFoundError
from flowcrm.models import (
    AuditAction, Customer, DiscountType, PreSale, PreSaleItem, PreSaleStatus,
    StockAdjustmentType
)
from flowcrm.services.audit_service import log_action
from flowcrm.services.presale_calculations import DiscountSpec, compute_totals, discount_with_conversion
from flowcrm.services.presale_status import parse_status, transition
from flowcrm.services.stock_service import SqlProductLookup, apply_adjustment, ensure_stock, validate_stock
from flowcrm.utils.money import to_decimal

logger = logging.getLogger(__name__)

SALES_SYSTEM_USER = 'Sales System'

SORT_COLUMNS = {
    'created_at': PreSale.created_at,
    'total': PreSale.total,
    'status': PreSale.status,
}


def _discount_spec(data: Dict[str, Any], presale: Optional[PreSale] = None) -> DiscountSpec:
    """
    Global discount from request data.

    A percentage discount reads ``discount_percentage`` (falling back to
    ``discount``); a fixed one reads ``discount``. On update, values that are
    not sent keep the pre-sale's stored representation of the chosen type.
    """
    discount_type = data.get('discount_type') or (presale.discount_type if presale else None)
    spec_type = DiscountSpec.parse(discount_type).type

    if spec_type is DiscountType.PERCENTAGE:
        value = data.get('discount_percentage')
        if value is None:
            value = data.get('discount')
        if value is None and presale is not None:
            value = presale.discount_percentage
    else:
        value = data.get('discount')
        if value is None and presale is not None:
            value = presale.discount

    return DiscountSpec.parse(spec_type.value, value)


def _items_from_presale(presale: PreSale) -> List[Dict[str, Any]]:
    return [
        {
            'product_id': item.product_id,
            'quantity': item.quantity,
            'unit_price': item.unit_price,
            'discount': item.discount,
        }
        for item in presale.items
    ]


def _build_items(item_details: List[Dict[str, Any]]) -> List[PreSaleItem]:
    return [
        PreSaleItem(
            product_id=detail['product_id'],
            position=position,
            quantity=detail['quantity'],
            unit_price=detail['unit_price'],
            discount=detail['discount'],
            total_price=detail['line_total_with_discount'],
        )
        for position, detail in enumerate(item_details)
    ]


def _check_products(session: Session, items: List[Dict[str, Any]]) -> SqlProductLookup:
    """
    Fail with InvalidInputError for fractional quantities, NotFoundError for
    unknown products, then InsufficientStockError for shortfalls.

    Stock is kept in whole units, so a fractional quantity could never be
    removed from stock on conversion.
    """
    for position, item in enumerate(items):
        quantity = to_decimal(item.get('quantity'), 'quantity')
        if quantity != quantity.to_integral_value():
            raise InvalidInputError(
                f'Invalid quantity for item {position}: must be a whole number of units',
                {'product_id': item.get('product_id'), 'quantity': quantity}
            )

    lookup = SqlProductLookup(session, [item.get('product_id') for item in items])
    missing = [item.get('product_id') for item in items if lookup(item.get('product_id')) is None]
    if missing:
        raise NotFoundError(f'Product not found: {missing[0]}', {'product_ids': missing})
    ensure_stock(items, lookup)
    return lookup


def _get_customer(session: Session, customer_id) -> Customer:
    if not customer_id:
        raise InvalidInputError('Customer is required')
    customer = session.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError('Customer not found')
    return customer


def _apply_totals(presale: PreSale, items: List[Dict[str, Any]], spec: DiscountSpec) -> Dict[str, Any]:
    totals = compute_totals(items, spec)
    conversion = discount_with_conversion(totals['subtotal'], spec.value, spec.type)

    presale.subtotal = totals['subtotal']
    presale.total = totals['total']
    # Uncapped fixed value; only the total uses the capped amount
    presale.discount = conversion['fixed_value']
    presale.discount_type = spec.type.value
    presale.discount_percentage = conversion['percentage']
    return totals


def _consume_stock(session: Session, presale: PreSale, lookup: SqlProductLookup) -> None:
    """Remove every item's quantity from stock, recording one adjustment per item."""
    reason = f'Pre-sale #{presale.id[:8]} converted to sale'
    for item in presale.items:
        product = lookup(item.product_id)
        if product is None:
            raise NotFoundError(f'Product not found: {item.product_id}')
        apply_adjustment(
            session, product, StockAdjustmentType.REMOVE, item.quantity, reason, SALES_SYSTEM_USER
        )


def _apply_status(session: Session, presale: PreSale, new_status) -> Optional[str]:
    """
    Run a status change through the state machine.

    Conversion re-validates stock on the current items and consumes it in
    the caller's transaction.

    Returns:
        The previous status when it changed, None for a no-op.
    """
    previous = presale.status
    converting = parse_status(new_status) is PreSaleStatus.CONVERTED
    check_stock = None

    if converting:
        # Locks the product rows until commit
        lookup = SqlProductLookup(session, [item.product_id for item in presale.items], for_update=True)

        def check_stock(p):
            ensure_stock(_items_from_presale(p), lookup)

    if not transition(presale, new_status, check_stock):
        return None

    if converting:
        _consume_stock(session, presale, lookup)

    action = (AuditAction.PRESALE_CONVERTED if presale.status == PreSaleStatus.CONVERTED.value
              else AuditAction.PRESALE_STATUS_CHANGED)
    log_action(session, action, resource_type='presale', resource_id=presale.id,
               details={'from': previous, 'to': presale.status})
    return previous


def _record_transition(previous: Optional[str], presale: PreSale) -> None:
    if previous is None:
        return
    presale_status_transitions_total.labels(from_status=previous, to_status=presale.status).inc()
    logger.info(f"Pre-sale {presale.id} status changed: {previous} -> {presale.status}")


def get_presale(session: Session, presale_id: str) -> PreSale:
    """Get a pre-sale with its items, or raise NotFoundError."""
    presale = session.query(PreSale).options(
        selectinload(PreSale.items).selectinload(PreSaleItem.product),
        selectinload(PreSale.customer)
    ).filter(PreSale.id == presale_id).first()

    if not presale:
        raise NotFoundError('Pre-sale not found')
    return presale


def create_presale(session: Session, data: Dict[str, Any]) -> PreSale:
    """
    Create a pre-sale.

    The new pre-sale is always pending, whatever status the caller sent.

    Raises:
        InvalidInputError: missing customer, empty items or bad amounts
        NotFoundError: unknown customer or product
        InsufficientStockError: any item exceeds the available stock
    """
    items = data.get('items') or []

    try:
        _get_customer(session, data.get('customer_id'))
        spec = _discount_spec(data)

        presale = PreSale(
            customer_id=data['customer_id'],
            status=PreSaleStatus.PENDING.value,
            notes=(data.get('notes') or '').strip() or None,
        )
        totals = _apply_totals(presale, items, spec)
        _check_products(session, items)

        presale.items = _build_items(totals['item_details'])
        session.add(presale)
        session.flush()

        log_action(session, AuditAction.PRESALE_CREATED, resource_type='presale', resource_id=presale.id,
                   details={'customer_id': presale.customer_id, 'total': presale.total,
                            'items': len(presale.items)})
        session.commit()
    except CrmError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Pre-sale created: {presale.id} total={presale.total}")
    return presale


def update_presale(session: Session, presale_id: str, data: Dict[str, Any]) -> PreSale:
    """
    Update a pre-sale.

    Items, when sent, replace the current ones. Totals are recomputed whenever
    items or discount fields change. A status change goes through the state
    machine after the other changes are applied.

    Raises:
        NotFoundError, ConflictError (converted pre-sale), InvalidInputError,
        InvalidStatusTransitionError, InsufficientStockError
    """
    try:
        presale = get_presale(session, presale_id)
        if presale.is_final:
            raise ConflictError('Converted pre-sales cannot be modified')

        if data.get('customer_id') is not None:
            _get_customer(session, data['customer_id'])
            presale.customer_id = data['customer_id']

        items_changed = data.get('items') is not None
        discount_changed = any(data.get(k) is not None for k in ('discount', 'discount_type', 'discount_percentage'))

        if items_changed or discount_changed:
            items = data['items'] if items_changed else _items_from_presale(presale)
            totals = _apply_totals(presale, items, _discount_spec(data, presale))
            if items_changed:
                _check_products(session, items)
                presale.items = _build_items(totals['item_details'])

        if 'notes' in data:
            presale.notes = (data.get('notes') or '').strip() or None

        previous = None
        if data.get('status') is not None:
            previous = _apply_status(session, presale, data['status'])

        log_action(session, AuditAction.PRESALE_UPDATED, resource_type='presale', resource_id=presale.id,
                   details={'fields': sorted(k for k, v in data.items() if v is not None)})
        session.commit()
    except CrmError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    _record_transition(previous, presale)
    return presale


def change_status(session: Session, presale_id: str, new_status) -> PreSale:
    """
    Change a pre-sale's status.

    Converting re-checks stock and removes the items from stock in the same
    transaction as the status write; on any failure nothing is persisted.
    """
    try:
        presale = get_presale(session, presale_id)
        previous = _apply_status(session, presale, new_status)
        session.commit()
    except CrmError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    _record_transition(previous, presale)
    return presale


def delete_presale(session: Session, presale_id: str) -> None:
    """Delete a pre-sale and its items. Converted pre-sales cannot be deleted."""
    try:
        presale = get_presale(session, presale_id)
        if presale.is_final:
            raise ConflictError('Converted pre-sales cannot be deleted')

        log_action(session, AuditAction.PRESALE_DELETED, resource_type='presale', resource_id=presale.id,
                   details={'status': presale.status, 'total': presale.total})
        session.delete(presale)
        session.commit()
    except CrmError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Pre-sale deleted: {presale_id}")


def _filtered_query(session: Session, filters: Optional[Dict[str, Any]]):
    filters = filters or {}
    query = session.query(PreSale)

    if filters.get('customer_id'):
        query = query.filter(PreSale.customer_id == filters['customer_id'])

    statuses = filters.get('status')
    if statuses:
        if isinstance(statuses, str):
            statuses = [s for s in statuses.split(',') if s.strip()]
        query = query.filter(PreSale.status.in_([parse_status(s.strip() if isinstance(s, str) else s).value
                                                 for s in statuses]))

    if filters.get('date_from'):
        start = datetime.combine(filters['date_from'], time.min, tzinfo=timezone.utc)
        query = query.filter(PreSale.created_at >= start)

    if filters.get('date_to'):
        end = datetime.combine(filters['date_to'] + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.filter(PreSale.created_at < end)

    if filters.get('customer_name'):
        query = query.join(Customer, PreSale.customer_id == Customer.id).filter(
            Customer.name.ilike(f"%{filters['customer_name'].strip()}%")
        )

    return query


def list_presales(
    session: Session,
    filters: Optional[Dict[str, Any]] = None,
    page: int = 1,
    per_page: int = 20,
    sort_by: str = 'created_at',
    sort_order: str = 'desc'
) -> List[PreSale]:
    """
    Pre-sales matching the filters.

    Filters: ``customer_id``, ``status`` (list or comma separated),
    ``date_from`` / ``date_to`` (dates, inclusive), ``customer_name``.
    """
    column = SORT_COLUMNS.get(sort_by)
    if column is None:
        raise InvalidInputError(f"Invalid sort field: {sort_by}. Must be one of: {', '.join(SORT_COLUMNS)}")
    if sort_order not in ('asc', 'desc'):
        raise InvalidInputError('Invalid sort order: must be "asc" or "desc"')
    if page < 1 or per_page < 1:
        raise InvalidInputError('Invalid pagination: page and per_page must be greater than 0')

    query = _filtered_query(session, filters).options(
        selectinload(PreSale.items), selectinload(PreSale.customer)
    )
    ordering = column.asc() if sort_order == 'asc' else column.desc()
    query = query.order_by(ordering, PreSale.id)

    return query.limit(per_page).offset((page - 1) * per_page).all()


def count_presales(session: Session, filters: Optional[Dict[str, Any]] = None) -> int:
    """Number of pre-sales matching the filters."""
    return _filtered_query(session, filters).count()


def preview_totals(session: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    """Totals and stock check for a prospective pre-sale. Nothing is persisted."""
    items = data.get('items') or []
    spec = _discount_spec(data)
    totals = compute_totals(items, spec)
    conversion = discount_with_conversion(totals['subtotal'], spec.value, spec.type)

    lookup = SqlProductLookup(session, [item.get('product_id') for item in items])
    totals['discount_type'] = spec.type.value
    totals['discount_percentage'] = conversion['percentage']
    totals['stock'] = validate_stock(items, lookup)
    return totals
