"""
Price suggestion and margin/markup analysis.

``suggest_*`` and ``analyze_pricing`` are pure; ``suggest_price_for_product``
reads the product's prices and memoizes the result in the cache.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List

from flask import current_app
from sqlalchemy.orm import Session

from flowcrm.exceptions import InvalidInputError, NotFoundError
from flowcrm.models import Product
from flowcrm.services.cache_service import get_cache
from flowcrm.utils.money import (
    HUNDRED,
    margin_from_cost_and_price,
    markup_from_cost_and_price,
    price_from_target_margin,
    price_from_target_markup,
    round_money,
    to_decimal,
    validate_margin_percentage,
    validate_markup_percentage,
)

logger = logging.getLogger(__name__)

CACHE_MODULE = 'price'

LOW_MARGIN_THRESHOLD = Decimal('10')
HIGH_MARGIN_THRESHOLD = Decimal('70')
LOW_MARKUP_THRESHOLD = Decimal('20')
LOW_PROFIT_THRESHOLD = Decimal('1')
PRICE_GAP_THRESHOLD = Decimal('20')


def _suggestion(cost, price) -> Dict[str, Decimal]:
    # Projections use the unrounded price so the target is reproduced exactly
    margin = margin_from_cost_and_price(cost, price)
    markup = markup_from_cost_and_price(cost, price)
    return {
        'cost': round_money(cost),
        'suggested_price': round_money(price),
        'projected_margin': margin['margin_percentage'],
        'projected_markup': markup['markup_percentage'],
        'profit': round_money(price - cost),
    }


def suggest_by_margin(cost, target_margin) -> Dict[str, Decimal]:
    """Price for a target margin: cost / (1 - margin/100)."""
    cost = to_decimal(cost, 'cost')
    target_margin = validate_margin_percentage(target_margin)
    result = _suggestion(cost, price_from_target_margin(cost, target_margin))
    result['target_margin'] = target_margin
    return result


def suggest_by_markup(cost, target_markup) -> Dict[str, Decimal]:
    """Price for a target markup: cost * (1 + markup/100)."""
    cost = to_decimal(cost, 'cost')
    target_markup = validate_markup_percentage(target_markup)
    result = _suggestion(cost, price_from_target_markup(cost, target_markup))
    result['target_markup'] = target_markup
    return result


def _pick_target(target_margin, target_markup):
    if target_margin is not None and target_markup is not None:
        raise InvalidInputError('Cannot specify both target margin and target markup. Choose one.')
    if target_margin is None and target_markup is None:
        raise InvalidInputError('Must specify either target margin or target markup')


def suggest_price(cost, target_margin=None, target_markup=None) -> Dict[str, Decimal]:
    """Suggest a price from exactly one of target margin or target markup."""
    _pick_target(target_margin, target_markup)
    if target_margin is not None:
        return suggest_by_margin(cost, target_margin)
    return suggest_by_markup(cost, target_markup)


def margin_and_markup(cost, price) -> Dict[str, Any]:
    """Margin and markup of a price, both as amount and percentage."""
    margin = margin_from_cost_and_price(cost, price)
    markup = markup_from_cost_and_price(cost, price)
    return {
        'cost': margin['cost'],
        'selling_price': margin['selling_price'],
        'profit': margin['profit'],
        'margin': {'amount': margin['profit'], 'percentage': margin['margin_percentage']},
        'markup': {'amount': markup['profit'], 'percentage': markup['markup_percentage']},
    }


def analyze_pricing(cost, price) -> Dict[str, Any]:
    """
    Margin/markup analysis with recommendations.

    Recommendations are emitted in a fixed order, one per triggered rule:
    low margin, very high margin, low markup, very low profit.
    """
    analysis = margin_and_markup(cost, price)
    recommendations = []

    if analysis['margin']['percentage'] < LOW_MARGIN_THRESHOLD:
        recommendations.append('Low margin detected. Consider increasing selling price for better profitability.')

    if analysis['margin']['percentage'] > HIGH_MARGIN_THRESHOLD:
        recommendations.append('Very high margin. Consider if price is competitive in the market.')

    if analysis['markup']['percentage'] < LOW_MARKUP_THRESHOLD:
        recommendations.append('Low markup detected. Ensure all costs are covered.')

    if analysis['profit'] < LOW_PROFIT_THRESHOLD:
        recommendations.append('Very low profit margin. Review cost structure and pricing strategy.')

    analysis['recommendations'] = recommendations
    return analysis


def batch_analyze(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Margin/markup for several products.

    Stops at the first invalid item and reports which product failed.
    """
    if not items:
        raise InvalidInputError('Items array cannot be empty')

    results = []
    for item in items:
        product_id = item.get('product_id')
        try:
            result = margin_and_markup(item.get('cost'), item.get('selling_price'))
        except InvalidInputError as e:
            raise InvalidInputError(
                f"Error calculating margin for product {product_id or 'unknown'}: {e.message}",
                {'product_id': product_id}
            )
        result['product_id'] = product_id
        results.append(result)
    return results


def _format_target(value: Decimal) -> str:
    return f'{value.normalize():f}'


def _product_recommendations(current_price, suggested_price, analysis, target_margin, target_markup) -> List[str]:
    recommendations = []

    if current_price > 0:
        difference = suggested_price - current_price
        difference_pct = abs(difference / current_price * HUNDRED)
        if difference_pct > PRICE_GAP_THRESHOLD:
            gap = difference_pct.quantize(Decimal('0.1'))
            if difference > 0:
                recommendations.append(
                    f'Suggested price is {gap}% higher than current price. Consider gradual price increase.'
                )
            else:
                recommendations.append(
                    f'Suggested price is {gap}% lower than current price. Review cost structure.'
                )

    if analysis['margin']['percentage'] < LOW_MARGIN_THRESHOLD:
        recommendations.append('Low margin detected. Consider increasing price or reducing costs for better profitability.')
    elif analysis['margin']['percentage'] > HIGH_MARGIN_THRESHOLD:
        recommendations.append('Very high margin. Ensure price remains competitive in the market.')

    if analysis['markup']['percentage'] < LOW_MARKUP_THRESHOLD:
        recommendations.append('Low markup detected. Ensure all costs and overhead are adequately covered.')

    if analysis['profit'] < LOW_PROFIT_THRESHOLD:
        recommendations.append('Very low profit margin. Review pricing strategy and cost structure.')

    if target_margin is not None:
        recommendations.append(
            f"Price calculated to achieve {_format_target(target_margin)}% margin. "
            f"Actual projected margin: {analysis['margin']['percentage']}%"
        )
    if target_markup is not None:
        recommendations.append(
            f"Price calculated to achieve {_format_target(target_markup)}% markup. "
            f"Actual projected markup: {analysis['markup']['percentage']}%"
        )

    return recommendations


def suggest_price_for_product(
    session: Session,
    product_id: str,
    target_margin=None,
    target_markup=None
) -> Dict[str, Any]:
    """
    Suggest a new sale price for a product from its purchase price.

    Raises:
        NotFoundError: unknown product
        InvalidInputError: bad or missing target, or a product without a
            positive purchase price
    """
    _pick_target(target_margin, target_markup)
    if target_margin is not None:
        target_margin = validate_margin_percentage(target_margin)
    else:
        target_markup = validate_markup_percentage(target_markup)

    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f'Product not found: {product_id}')

    cost = to_decimal(product.purchase_price, 'cost')
    current_price = to_decimal(product.sale_price, 'current price')

    # Prices are part of the key, so a price change never serves a stale entry
    cache_key = f'{product_id}:{cost}:{current_price}:{target_margin}:{target_markup}'

    def load():
        suggestion = suggest_price(cost, target_margin, target_markup)
        analysis = margin_and_markup(cost, suggestion['suggested_price'])
        return {
            'product_id': product_id,
            'product_name': product.name,
            'cost': round_money(cost),
            'current_price': round_money(current_price),
            'suggested_price': suggestion['suggested_price'],
            'projected_margin': analysis['margin'],
            'projected_markup': analysis['markup'],
            'recommendations': _product_recommendations(
                current_price, suggestion['suggested_price'], analysis, target_margin, target_markup
            ),
        }

    ttl = current_app.config.get('CACHE_PRICE_TTL', 300)
    result = get_cache().memoize(CACHE_MODULE, cache_key, load, ttl)
    logger.debug(f"Price suggestion for product {product_id}: {result['suggested_price']}")
    return result
