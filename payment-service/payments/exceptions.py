"""
Error taxonomy of the payment service.

PaymentServiceError
├── ValidationError              caller input breaks a precondition
├── NotFoundError
│   └── PaymentNotFoundError
├── DependencyError              order service failed permanently
│   ├── OrderNotFoundError       order service answered 404 (also a NotFoundError)
│   └── DependencyExhaustedError transient failures outlived the retry policy
└── ConcurrentModificationError  optimistic lock lost on save
"""
from typing import Optional


class PaymentServiceError(Exception):
    """Base class for errors surfaced to callers of the payment service."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PaymentServiceError):
    status_code = 400

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class NotFoundError(PaymentServiceError):
    status_code = 404


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: int):
        super().__init__(f"Payment with id: {payment_id} not found")
        self.payment_id = payment_id


class DependencyError(PaymentServiceError):
    status_code = 502

    def __init__(self, message: str, order_id: Optional[int] = None):
        super().__init__(message)
        self.order_id = order_id


class OrderNotFoundError(DependencyError, NotFoundError):
    def __init__(self, order_id: int):
        super().__init__(f"Order with ID {order_id} not found", order_id=order_id)


class DependencyExhaustedError(DependencyError):
    """Raised once the retry policy gives up on a transient order-service failure."""

    status_code = 503

    def __init__(self, order_id: Optional[int], cause: Exception):
        super().__init__(
            f"Failed to save payment after all retry attempts. Order ID: {order_id}. Error: {cause}",
            order_id=order_id,
        )
        self.cause = cause


class ConcurrentModificationError(PaymentServiceError):
    status_code = 409

    def __init__(self, payment_id: int):
        super().__init__(f"Payment with id: {payment_id} was modified concurrently, retry the request")
        self.payment_id = payment_id
