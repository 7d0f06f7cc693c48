"""Pricing API blueprint: margin/markup calculations and price suggestions."""
from flask import Blueprint

from flowcrm.exceptions import InvalidInputError
from flowcrm.services import price_service
from flowcrm.utils.money import margin_to_markup, markup_to_margin
from flowcrm.utils.request_parsing import json_body, optional_decimal, required_decimal
from flowcrm.utils.responses import success
from flowcrm.utils.serializers import camelize

price_bp = Blueprint('price', __name__, url_prefix='/api/price')


@price_bp.route('/margin-markup', methods=['POST'])
def margin_markup():
    """Margin and markup of a selling price over its cost."""
    data = json_body()
    result = price_service.margin_and_markup(
        required_decimal(data, 'cost'),
        required_decimal(data, 'sellingPrice', 'selling price')
    )
    return success(camelize(result))


@price_bp.route('/suggest', methods=['POST'])
def suggest():
    """Suggest a price from a cost and one target (margin or markup)."""
    data = json_body()
    result = price_service.suggest_price(
        required_decimal(data, 'cost'),
        target_margin=optional_decimal(data, 'targetMargin', 'margin percentage'),
        target_markup=optional_decimal(data, 'targetMarkup', 'markup percentage')
    )
    return success(camelize(result))


@price_bp.route('/analyze', methods=['POST'])
def analyze():
    data = json_body()
    result = price_service.analyze_pricing(
        required_decimal(data, 'cost'),
        required_decimal(data, 'sellingPrice', 'selling price')
    )
    return success(camelize(result))


@price_bp.route('/batch-analyze', methods=['POST'])
def batch_analyze():
    """Margin/markup for several products; fails on the first invalid item."""
    raw_items = json_body().get('items')
    if not isinstance(raw_items, list) or not raw_items:
        raise InvalidInputError('Items array cannot be empty')

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise InvalidInputError('Invalid item: must be an object')
        items.append({
            'product_id': raw.get('productId'),
            'cost': raw.get('cost'),
            'selling_price': raw.get('sellingPrice'),
        })

    return success(camelize(price_service.batch_analyze(items)))


@price_bp.route('/convert', methods=['POST'])
def convert():
    """Convert a margin percentage to markup, or a markup percentage to margin."""
    data = json_body()
    margin = optional_decimal(data, 'marginPercentage', 'margin percentage')
    markup = optional_decimal(data, 'markupPercentage', 'markup percentage')

    if (margin is None) == (markup is None):
        raise InvalidInputError('Specify exactly one of marginPercentage or markupPercentage')

    if margin is not None:
        return success({'marginPercentage': margin, 'markupPercentage': margin_to_markup(margin)})
    return success({'marginPercentage': markup_to_margin(markup), 'markupPercentage': markup})
