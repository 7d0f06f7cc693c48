"""Custom exceptions for the Flow CRM application."""


class CrmError(Exception):
    """Base exception for all application errors."""
    code = 'INTERNAL_ERROR'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = {
            'code': self.code,
            'message': self.message,
        }
        if self.payload:
            rv['details'] = dict(self.payload)
        return rv


class InvalidInputError(CrmError):
    """Raised for malformed or out-of-range numeric input."""
    code = 'INVALID_INPUT'

    def __init__(self, message, payload=None):
        super().__init__(message, 422, payload)


class NotFoundError(CrmError):
    """Exception raised when a resource is not found."""
    code = 'NOT_FOUND'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ConflictError(CrmError):
    """Raised when an operation violates a structural business rule."""
    code = 'CONFLICT'

    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class InvalidStatusTransitionError(CrmError):
    """Raised when a pre-sale status change is not in the transition table."""
    code = 'INVALID_STATUS_TRANSITION'

    def __init__(self, current_status, new_status):
        message = f"Invalid status transition from {current_status} to {new_status}"
        super().__init__(message, 400, {'from': current_status, 'to': new_status})
        self.current_status = current_status
        self.new_status = new_status


class InsufficientStockError(CrmError):
    """
    Raised when one or more items exceed the available stock.

    Carries every problem found, not just the first one.
    """
    code = 'INSUFFICIENT_STOCK'

    def __init__(self, errors, shortfalls=None):
        errors = list(errors)
        message = '; '.join(errors) if errors else 'Insufficient stock'
        super().__init__(message, 409, {'errors': errors, 'shortfalls': list(shortfalls or [])})
        self.errors = errors
        self.shortfalls = list(shortfalls or [])
