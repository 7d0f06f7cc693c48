"""Pre-sales API blueprint."""
from datetime import date

from flask import Blueprint, current_app, request

from flowcrm.database import get_session
from flowcrm.exceptions import InvalidInputError
from flowcrm.services import presale_service
from flowcrm.utils.money import to_decimal
from flowcrm.utils.request_parsing import json_body, optional_decimal
from flowcrm.utils.responses import created, success
from flowcrm.utils.serializers import camelize, serialize_presale

presales_bp = Blueprint('presales', __name__, url_prefix='/api/presales')

SORT_FIELDS = {'createdAt': 'created_at', 'created_at': 'created_at', 'total': 'total', 'status': 'status'}


def _parse_items(raw_items):
    if not isinstance(raw_items, list) or not raw_items:
        raise InvalidInputError('Items array cannot be empty')

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise InvalidInputError(f'Invalid item at position {index}: must be an object')
        if not raw.get('productId'):
            raise InvalidInputError(f'Invalid item at position {index}: productId is required')
        items.append({
            'product_id': str(raw['productId']),
            'quantity': to_decimal(raw.get('quantity'), 'quantity'),
            'unit_price': to_decimal(raw.get('unitPrice'), 'unit price'),
            'discount': to_decimal(raw.get('discount') or 0, 'discount'),
        })
    return items


def parse_presale_payload(data, partial=False):
    """
    Map the camelCase request body to service input.

    On create (``partial=False``) customerId and items are required and
    any status sent is ignored.
    """
    parsed = {}

    if not partial or 'customerId' in data:
        parsed['customer_id'] = data.get('customerId')
    if not partial or 'items' in data:
        parsed['items'] = _parse_items(data.get('items'))

    for key, field in (('discount', 'discount'), ('discountPercentage', 'discount_percentage')):
        value = optional_decimal(data, key, field.replace('_', ' '))
        if value is not None:
            parsed[field] = value
    if data.get('discountType'):
        parsed['discount_type'] = data['discountType']

    if 'notes' in data:
        if data['notes'] is not None and not isinstance(data['notes'], str):
            raise InvalidInputError('Invalid notes: must be a string')
        parsed['notes'] = data['notes']

    if partial and data.get('status'):
        parsed['status'] = data['status']

    return parsed


def _int_arg(name, default):
    value = request.args.get(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidInputError(f'Invalid {name}: must be an integer')


def _date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise InvalidInputError('Invalid date format provided', {'field': name})


@presales_bp.route('', methods=['GET'])
def list_presales():
    """List pre-sales with filters, sorting and pagination."""
    page = _int_arg('page', 1)
    per_page = min(
        _int_arg('perPage', _int_arg('limit', current_app.config['PRESALE_PAGE_SIZE'])),
        current_app.config['PRESALE_MAX_PAGE_SIZE']
    )

    sort_by = request.args.get('sortBy', 'createdAt')
    if sort_by not in SORT_FIELDS:
        raise InvalidInputError(f"Invalid sort field: {sort_by}. Must be one of: createdAt, total, status")

    filters = {
        'customer_id': request.args.get('customerId'),
        'status': request.args.getlist('status') or None,
        'date_from': _date_arg('dateFrom'),
        'date_to': _date_arg('dateTo'),
        'customer_name': request.args.get('customerName') or request.args.get('search'),
    }
    if filters['status'] and len(filters['status']) == 1:
        filters['status'] = filters['status'][0]
    if filters['date_from'] and filters['date_to'] and filters['date_from'] > filters['date_to']:
        raise InvalidInputError('Start date must be before or equal to end date')

    db_session = get_session()
    presales = presale_service.list_presales(
        db_session, filters, page=page, per_page=per_page,
        sort_by=SORT_FIELDS[sort_by], sort_order=request.args.get('sortOrder', 'desc').lower()
    )
    total = presale_service.count_presales(db_session, filters)

    return success({
        'presales': [serialize_presale(p) for p in presales],
        'pagination': {
            'page': page,
            'perPage': per_page,
            'total': total,
            'totalPages': (total + per_page - 1) // per_page,
        },
    })


@presales_bp.route('/<presale_id>', methods=['GET'])
def get_presale(presale_id):
    presale = presale_service.get_presale(get_session(), presale_id)
    return success(serialize_presale(presale))


@presales_bp.route('', methods=['POST'])
def create_presale():
    """Create a pre-sale. New pre-sales always start as pending."""
    data = parse_presale_payload(json_body())
    presale = presale_service.create_presale(get_session(), data)
    return created(serialize_presale(presale), 'Pre-sale created successfully')


@presales_bp.route('/<presale_id>', methods=['PUT'])
def update_presale(presale_id):
    data = parse_presale_payload(json_body(), partial=True)
    presale = presale_service.update_presale(get_session(), presale_id, data)
    return success(serialize_presale(presale), 'Pre-sale updated successfully')


@presales_bp.route('/<presale_id>/status', methods=['PATCH'])
def change_status(presale_id):
    """Change status; converting consumes stock."""
    status = json_body().get('status')
    if not status:
        raise InvalidInputError('Status is required')

    presale = presale_service.change_status(get_session(), presale_id, status)
    return success(serialize_presale(presale), 'Pre-sale status updated successfully')


@presales_bp.route('/<presale_id>', methods=['DELETE'])
def delete_presale(presale_id):
    presale_service.delete_presale(get_session(), presale_id)
    return success(None, 'Pre-sale deleted successfully')


@presales_bp.route('/calculate', methods=['POST'])
def calculate_totals():
    """Preview totals and stock availability without saving."""
    parsed = parse_presale_payload(json_body())
    totals = presale_service.preview_totals(get_session(), parsed)
    return success(camelize(totals))
