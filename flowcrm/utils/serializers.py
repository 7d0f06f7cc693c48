"""Model and result serialization for the JSON API (camelCase field names)."""


def to_camel(name):
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def camelize(value):
    """Recursively convert dict keys from snake_case to camelCase."""
    if isinstance(value, dict):
        return {to_camel(k): camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(v) for v in value]
    return value


def _iso(value):
    return value.isoformat() if value else None


def serialize_presale_item(item):
    product = item.product
    return {
        'id': item.id,
        'productId': item.product_id,
        'quantity': item.quantity,
        'unitPrice': item.unit_price,
        'discount': item.discount,
        'totalPrice': item.total_price,
        'product': {
            'id': product.id,
            'code': product.code,
            'name': product.name,
            'unit': product.unit,
            'stock': product.stock,
        } if product else None,
    }


def serialize_presale(presale):
    return {
        'id': presale.id,
        'customerId': presale.customer_id,
        'customer': {
            'id': presale.customer.id,
            'name': presale.customer.name,
            'email': presale.customer.email,
            'document': presale.customer.document,
        } if presale.customer else None,
        'status': presale.status,
        'subtotal': presale.subtotal,
        'total': presale.total,
        'discount': presale.discount,
        'discountType': presale.discount_type,
        'discountPercentage': presale.discount_percentage,
        'notes': presale.notes,
        'createdAt': _iso(presale.created_at),
        'updatedAt': _iso(presale.updated_at),
        'items': [serialize_presale_item(item) for item in presale.items],
    }


def serialize_stock_adjustment(adjustment):
    return {
        'id': adjustment.id,
        'productId': adjustment.product_id,
        'adjustmentType': adjustment.adjustment_type,
        'quantity': adjustment.quantity,
        'previousStock': adjustment.previous_stock,
        'newStock': adjustment.new_stock,
        'reason': adjustment.reason,
        'userName': adjustment.user_name,
        'createdAt': _iso(adjustment.created_at),
    }
