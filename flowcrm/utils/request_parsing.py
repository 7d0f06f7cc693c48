"""Request body helpers shared by the API blueprints."""
from flask import request

from flowcrm.exceptions import InvalidInputError
from flowcrm.utils.money import to_decimal


def json_body():
    """Request JSON object, or InvalidInputError."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError('Request body must be a JSON object')
    return data


def required_decimal(data, key, field=None):
    """Decimal value of a required body field."""
    if data.get(key) in (None, ''):
        raise InvalidInputError(f'{key} is required')
    return to_decimal(data[key], field or key)


def optional_decimal(data, key, field=None):
    """Decimal value of an optional body field; None when absent or empty."""
    if data.get(key) in (None, ''):
        return None
    return to_decimal(data[key], field or key)
