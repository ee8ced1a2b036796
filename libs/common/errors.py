"""Domain error taxonomy shared by all marketplace services.

Errors are raised close to the rule they enforce and travel unchanged to the
HTTP boundary, where ``register_exception_handlers`` renders them. Anything
that is not a ``DomainError`` is treated as an infrastructure failure: it is
logged with its traceback and surfaced as a generic 500.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from libs.common.logging import get_logger

logger = get_logger(__name__)


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(self, message: str = None, status_code: int = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# 400 - validation and domain-specific rejections
# ---------------------------------------------------------------------------


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class EmptyCartError(ValidationError):
    default_message = "Cart is empty"


class AlreadyPaidError(ValidationError):
    default_message = "Order is already paid"


class InsufficientBalanceError(ValidationError):
    default_message = "Insufficient available balance"


class BelowMinimumError(ValidationError):
    default_message = "Amount is below the minimum withdrawal"


class PaymentAmountMismatchError(ValidationError):
    default_message = "Paid amount does not match the payment record"


# ---------------------------------------------------------------------------
# 404
# ---------------------------------------------------------------------------


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ProductNotFoundError(NotFoundError):
    default_message = "Product not found"


class VendorNotFoundError(NotFoundError):
    default_message = "Vendor not found"


class OrderNotFoundError(NotFoundError):
    default_message = "Order not found"


class CartItemNotFoundError(NotFoundError):
    default_message = "Item not found in cart"


class PaymentRecordNotFoundError(NotFoundError):
    default_message = "Payment record not found"


class WithdrawalNotFoundError(NotFoundError):
    default_message = "Withdrawal request not found"


# ---------------------------------------------------------------------------
# Authorization, state machine, upstream
# ---------------------------------------------------------------------------


class NotAuthorizedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class InvalidTransitionError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Invalid status transition"


class PaymentNotCompletedError(DomainError):
    """Provider confirmed the charge did not succeed. The order can be re-initialized."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "Payment was not completed"
    retryable = True


class UpstreamGatewayError(DomainError):
    """Payment provider unreachable or ambiguous. Never a business failure."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment provider unavailable, please retry"
    retryable = True


# ---------------------------------------------------------------------------
# FastAPI wiring
# ---------------------------------------------------------------------------


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render domain errors with their status code and hide internals of everything else."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
