"""Product endpoints used by the pre-sale engine: price suggestion and stock adjustments."""
from flask import Blueprint, request

from flowcrm.database import get_session
from flowcrm.exceptions import InvalidInputError
from flowcrm.services import price_service, stock_service
from flowcrm.services.audit_service import current_user_name
from flowcrm.utils.request_parsing import json_body, optional_decimal, required_decimal
from flowcrm.utils.responses import created, success
from flowcrm.utils.serializers import camelize, serialize_stock_adjustment

products_bp = Blueprint('products', __name__, url_prefix='/api')

MAX_HISTORY_LIMIT = 100


@products_bp.route('/products/<product_id>/suggest-price', methods=['POST'])
def suggest_price(product_id):
    """Suggest a sale price for a product from its purchase price."""
    data = json_body()
    result = price_service.suggest_price_for_product(
        get_session(),
        product_id,
        target_margin=optional_decimal(data, 'targetMargin', 'margin percentage'),
        target_markup=optional_decimal(data, 'targetMarkup', 'markup percentage')
    )
    return success(camelize(result))


@products_bp.route('/products/<product_id>/stock-adjustment', methods=['POST'])
def adjust_stock(product_id):
    """Add or remove stock, recording the adjustment."""
    data = json_body()
    adjustment = stock_service.adjust_stock(
        get_session(),
        product_id,
        data.get('adjustmentType'),
        required_decimal(data, 'quantity'),
        data.get('reason'),
        user_name=current_user_name()
    )
    return created(serialize_stock_adjustment(adjustment), 'Stock adjusted successfully')


@products_bp.route('/stock-adjustments', methods=['GET'])
def adjustment_history():
    """Stock adjustment history, newest first."""
    try:
        limit = int(request.args.get('limit', 50))
        offset = int(request.args.get('offset', 0))
    except ValueError:
        raise InvalidInputError('Invalid pagination: limit and offset must be integers')
    if limit < 1 or offset < 0:
        raise InvalidInputError('Invalid pagination: limit must be positive and offset non-negative')

    adjustments = stock_service.get_adjustment_history(
        get_session(),
        product_id=request.args.get('productId'),
        adjustment_type=request.args.get('adjustmentType'),
        limit=min(limit, MAX_HISTORY_LIMIT),
        offset=offset
    )
    return success([serialize_stock_adjustment(a) for a in adjustments])
