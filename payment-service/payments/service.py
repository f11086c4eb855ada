"""
Payment coordination across this service and the order service.

Creating a payment is "persist, then propagate": the payment row is written
before the order service is asked to move the order into IN_PAYMENT. If that
last call keeps failing the row stays NOT_STARTED while the order never left
ORDERED. There is no compensation step; the failure is logged and surfaced as
``DependencyExhaustedError`` so an operator can reconcile.
"""
from typing import List, NoReturn, Optional

import structlog

from payments import lifecycle
from payments.exceptions import (
    DependencyError,
    DependencyExhaustedError,
    OrderNotFoundError,
    PaymentNotFoundError,
    ValidationError,
)
from payments.lifecycle import AlreadyCanceledError, AlreadyCompletedError, IllegalTransitionError
from payments.metrics import COMPLETED_PAYMENTS, MetricsSink
from payments.models import OrderStatus, Payment
from payments.order_client import FailureKind, OrderServiceClient, OrderServiceError
from payments.retry import RetryPolicy, call_with_retry
from payments.schemas import OrderRead, PaymentCreate, PaymentRead, to_payment_read, to_payment_row
from payments.store import PaymentStore

logger = structlog.get_logger(__name__)

CANCEL_MESSAGES = {
    AlreadyCompletedError.reason: "Cannot cancel a completed payment",
    AlreadyCanceledError.reason: "Payment is already canceled",
}


class PaymentCoordinator:
    def __init__(
        self,
        store: PaymentStore,
        order_client: OrderServiceClient,
        metrics: MetricsSink,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.store = store
        self.order_client = order_client
        self.metrics = metrics
        self.retry_policy = retry_policy or RetryPolicy.from_env()

    async def list_filtered(self) -> List[PaymentRead]:
        """Payments whose order is currently IN_PAYMENT, each with its live order attached."""
        logger.info("list_payments")
        payments = []
        for payment in await self.store.find_all():
            try:
                order = await self.order_client.fetch_order(payment.order_id)
            except Exception as e:
                # One unreachable order must not blank out the whole listing
                logger.error("order_fetch_failed", payment_id=payment.payment_id, order_id=payment.order_id, error=str(e))
                continue

            if order.order_status.upper() != OrderStatus.IN_PAYMENT.value:
                continue
            item = to_payment_read(payment, order)
            if item not in payments:
                payments.append(item)
        return payments

    async def get_by_id(self, payment_id: int) -> PaymentRead:
        logger.info("get_payment", payment_id=payment_id)
        payment = await self._load(payment_id)
        try:
            order = await self.order_client.fetch_order(payment.order_id)
        except OrderServiceError as e:
            logger.error("order_fetch_failed", payment_id=payment_id, order_id=payment.order_id, error=str(e))
            raise DependencyError(
                f"Could not fetch order information for payment {payment_id}", order_id=payment.order_id
            ) from e
        return to_payment_read(payment, order)

    async def create(self, payment_in: PaymentCreate) -> PaymentRead:
        order_id = payment_in.order_id
        logger.info("create_payment", order_id=order_id)

        if order_id is None:
            raise ValidationError("Order ID must not be null")
        if lifecycle.is_terminal(payment_in.payment_status):
            raise ValidationError(
                f"A payment cannot be created in status {payment_in.payment_status.value}",
                reason="terminal_initial_status",
            )

        # Survives between attempts so a retry never inserts a second row
        persisted: Optional[Payment] = None

        async def attempt() -> PaymentRead:
            try:
                return await propagate()
            except (ValidationError, OrderNotFoundError) as e:
                # The row is saved but the order was never moved to IN_PAYMENT
                if persisted is not None:
                    logger.error(
                        "create_payment_abandoned",
                        payment_id=persisted.payment_id,
                        order_id=order_id,
                        error=str(e),
                    )
                raise

        async def propagate() -> PaymentRead:
            nonlocal persisted
            order = await self._fetch_payable_order(order_id)
            if persisted is None:
                persisted = await self.store.save(to_payment_row(payment_in))
                logger.info("payment_saved", payment_id=persisted.payment_id, order_id=order_id)

            try:
                await self.order_client.advance_order_status(order_id)
            except OrderServiceError as e:
                if e.kind is FailureKind.NOT_FOUND:
                    raise OrderNotFoundError(order_id) from e
                raise
            logger.info("order_status_updated", order_id=order_id)

            order = order.model_copy(update={"order_status": OrderStatus.IN_PAYMENT.value})
            return to_payment_read(persisted, order)

        def fallback(cause: BaseException) -> NoReturn:
            logger.error(
                "create_payment_exhausted",
                order_id=order_id,
                payment_id=persisted.payment_id if persisted is not None else None,
                error=str(cause),
            )
            raise DependencyExhaustedError(order_id, cause) from cause

        return await call_with_retry(self.retry_policy, attempt, fallback)

    async def advance(self, payment_id: int) -> PaymentRead:
        logger.info("advance_payment", payment_id=payment_id)
        payment = await self._load(payment_id)
        try:
            transition = lifecycle.advance(payment.payment_status)
        except IllegalTransitionError as e:
            raise ValidationError(f"{e} (payment id: {payment_id})", reason=e.reason) from e

        payment.payment_status = transition.current
        saved = await self.store.save(payment)
        if transition.completes_payment:
            self.metrics.increment(COMPLETED_PAYMENTS)
        logger.info("payment_advanced", payment_id=payment_id, status=transition.current.value)
        return to_payment_read(saved)

    async def cancel(self, payment_id: int) -> None:
        logger.info("cancel_payment", payment_id=payment_id)
        payment = await self._load(payment_id)
        try:
            transition = lifecycle.cancel(payment.payment_status)
        except IllegalTransitionError as e:
            logger.info("payment_not_cancelable", payment_id=payment_id, status=e.current.value)
            message = CANCEL_MESSAGES.get(e.reason, str(e))
            raise ValidationError(f"{message} (payment id: {payment_id})", reason=e.reason) from e

        payment.payment_status = transition.current
        await self.store.save(payment)
        logger.info("payment_canceled", payment_id=payment_id)

    async def _load(self, payment_id: int) -> Payment:
        payment = await self.store.find_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    async def _fetch_payable_order(self, order_id: int) -> OrderRead:
        try:
            order = await self.order_client.fetch_order(order_id)
        except OrderServiceError as e:
            if e.kind is FailureKind.NOT_FOUND:
                logger.error("order_not_found", order_id=order_id)
                raise OrderNotFoundError(order_id) from e
            raise

        if order.order_status != OrderStatus.ORDERED.value:
            raise ValidationError(
                f"Cannot start the payment of order {order_id}: it is not ordered or already in a payment process",
                reason="order_not_payable",
            )
        return order
