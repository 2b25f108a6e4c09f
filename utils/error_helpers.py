"""
Error handling helpers
JSON error responses for Flask routes and exception logging for background work
"""

import logging

from flask import jsonify

logger = logging.getLogger(__name__)


def json_error(error, status_code=400, **kwargs):
    """
    Create standardized error JSON response

    Args:
        error: Error message string
        status_code: HTTP status code (default 400)
        **kwargs: Additional fields to include

    Returns:
        JSON response {"error": ...} and the given status code
    """
    response = {'error': str(error)}
    response.update(kwargs)
    return jsonify(response), status_code


class log_exceptions:
    """
    Context manager that logs exceptions with custom context, then re-raises

    Usage:
        with log_exceptions("drawing giveaway", interaction_id=123):
            manager.draw(task)
    """
    def __init__(self, operation, **context):
        self.operation = operation
        self.context = context

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            context_str = ', '.join(f"{k}={v}" for k, v in self.context.items())
            logger.error(f"Error during {self.operation} [{context_str}]: {exc_val}", exc_info=True)
        return False  # Don't suppress exception
