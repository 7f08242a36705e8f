import logging

from flask import current_app, jsonify, request
from marshmallow import ValidationError as SchemaValidationError

from ledger.services.errors import ServiceError

logger = logging.getLogger(__name__)


def error_response(message, status_code, **extra):
    body = {'message': message}
    body.update(extra)
    return jsonify(body), status_code


def service_error_response(error: ServiceError):
    return error_response(error.message, error.status_code)


def schema_error_response(error: SchemaValidationError):
    return error_response('Validation failed', 400, errors=error.messages)


def unexpected_error_response(operation: str, error: Exception):
    logger.error(f"Unhandled error in {operation}: {error}", exc_info=True)
    return error_response('An unexpected error occurred. Please try again later.', 500)


def load_json(schema, partial=False):
    """Validate the request body with a marshmallow schema."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    return schema.load(data, partial=partial)


def resolve_limit(limit):
    if limit is None:
        return current_app.config.get('DEFAULT_PAGE_SIZE', 10)
    return min(limit, current_app.config.get('MAX_PAGE_SIZE', 100))
