from fishtrade.core.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    OrderValidationError,
    PersistenceFailureError,
)
from fishtrade.schemas.common import ErrorOut

# (error code, sample message) per status; 409 covers two domain errors.
_ERROR_EXAMPLES: dict[int, list[tuple[str, str]]] = {
    NotFoundError.status_code: [(NotFoundError.code, "Product not found: product-id-here")],
    409: [
        (InsufficientStockError.code, "Insufficient stock for Koi Showa: available 3, requested 5"),
        (InvalidTransitionError.code, "Cannot transition sale_order order-id from 'completed' to 'pending'"),
    ],
    OrderValidationError.status_code: [(OrderValidationError.code, "Validation failed")],
    500: [("internal_error", "Internal server error")],
    PersistenceFailureError.status_code: [
        (PersistenceFailureError.code, "Storage failure during sale_order.create; no changes were applied")
    ],
}

_RETRYABLE_CODES = {PersistenceFailureError.code}


def _example(code: str, message: str) -> dict:
    return {
        "summary": code,
        "value": {
            "error": {
                "code": code,
                "message": message,
                "request_id": "request-id",
                "path": "/example",
                "retryable": code in _RETRYABLE_CODES,
                "details": None,
            }
        },
    }


def error_responses(*status_codes: int) -> dict[int, dict]:
    """OpenAPI ``responses`` entries sharing the ErrorOut envelope."""
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        examples = _ERROR_EXAMPLES.get(status_code, [("http_error", "HTTP error")])
        responses[status_code] = {
            "model": ErrorOut,
            "description": " or ".join(code for code, _ in examples),
            "content": {
                "application/json": {
                    "examples": {code: _example(code, message) for code, message in examples}
                }
            },
        }
    return responses
