"""
MCP tool response builders.

Successful calls return human-readable ``content`` plus structured ``data``.
Failed calls set ``isError`` and put a stable reason code in ``data.reason``:

- ``invalid_parameters``: arguments failed Pydantic validation
- ``not_found``: unknown member, book or loan
- a circulation rule code such as ``max_renewals_reached``
- ``data_store_error``: the database failed
- ``internal_error``: anything else
"""

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..circulation.errors import CirculationError
from ..database.repository import NotFoundError, RepositoryException

logger = logging.getLogger(__name__)


def success_response(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": message}],
        "data": data,
    }


def error_response(message: str, reason: str, **details: Any) -> dict[str, Any]:
    return {
        "isError": True,
        "content": [{"type": "text", "text": message}],
        "data": {"reason": reason, **details},
    }


def invalid_parameters(operation: str, error: ValidationError) -> dict[str, Any]:
    logger.warning("Invalid %s parameters: %s", operation, error)
    fields = [".".join(str(part) for part in err["loc"]) for err in error.errors()]
    return error_response(
        f"Invalid {operation} parameters: {error}",
        "invalid_parameters",
        fields=fields,
    )


def failure_response(error: Exception, operation: str) -> dict[str, Any]:
    """Map an exception raised while running ``operation`` to a tool error."""
    if isinstance(error, NotFoundError):
        logger.info("%s failed - not found: %s", operation, error)
        return error_response(str(error), error.reason)

    if isinstance(error, CirculationError):
        logger.info("%s rejected - %s: %s", operation, error.reason, error)
        return error_response(str(error), error.reason)

    if isinstance(error, RepositoryException):
        logger.error("%s failed - data store: %s", operation, error)
        return error_response(f"{operation} failed: {error}", error.reason)

    if _is_data_store_error(error):
        logger.error("%s failed - data store: %s", operation, error)
        return error_response(f"{operation} failed: {error}", RepositoryException.reason)

    logger.exception("Unexpected error during %s", operation)
    return error_response(f"An unexpected error occurred: {error!s}", "internal_error")


def _is_data_store_error(error: Exception) -> bool:
    # mcp_safe_query / mcp_safe_commit raise ValueError from the driver error
    if isinstance(error, SQLAlchemyError):
        return True
    return isinstance(error, ValueError) and isinstance(error.__cause__, SQLAlchemyError)
