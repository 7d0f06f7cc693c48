"""JSON response envelope shared by every API endpoint."""
from datetime import datetime, timezone

from flask import jsonify, request


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


def success(data=None, message=None, status_code=200):
    """{"success": true, "data": ..., "message": ..., "timestamp": ...}"""
    body = {
        'success': True,
        'data': data,
        'timestamp': _timestamp(),
    }
    if message:
        body['message'] = message
    return jsonify(body), status_code


def created(data=None, message='Resource created successfully'):
    return success(data, message, 201)


def error(code, message, status_code, details=None):
    """{"success": false, "error": {"code", "message", "details"}, "timestamp", "path"}"""
    body = {
        'success': False,
        'error': {
            'code': code,
            'message': message,
        },
        'timestamp': _timestamp(),
        'path': request.path,
    }
    if details:
        body['error']['details'] = details
    return jsonify(body), status_code
