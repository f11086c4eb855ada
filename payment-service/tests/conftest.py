import pytest
from unittest.mock import AsyncMock, MagicMock
from payments.metrics import MetricsSink
from payments.models import Payment, PaymentStatus
from payments.order_client import FailureKind, OrderServiceClient, OrderServiceError
from payments.retry import RetryPolicy
from payments.schemas import OrderRead
from payments.service import PaymentCoordinator


class FakePaymentStore:
    """In-memory stand-in for the SQLAlchemy store; assigns ids like an autoincrement column."""

    def __init__(self, payments=()):
        self.rows = {}
        self.save_count = 0
        self._next_id = 1
        for payment in payments:
            self._insert(payment)

    def _insert(self, payment):
        if payment.payment_id is None:
            payment.payment_id = self._next_id
        self._next_id = max(self._next_id, payment.payment_id) + 1
        self.rows[payment.payment_id] = payment

    async def find_by_id(self, payment_id):
        return self.rows.get(payment_id)

    async def find_all(self):
        return [self.rows[key] for key in sorted(self.rows)]

    async def save(self, payment):
        self.save_count += 1
        self._insert(payment)
        return payment


def make_payment(payment_id, order_id, status=PaymentStatus.NOT_STARTED):
    return Payment(payment_id=payment_id, order_id=order_id, is_payed=False, payment_status=status)


def make_order(order_id, status="ORDERED"):
    return OrderRead(orderId=order_id, orderStatus=status)


def transient(order_id, status_code=503):
    return OrderServiceError(f"Order service answered {status_code}", FailureKind.TRANSIENT, order_id, status_code)


def not_found(order_id):
    return OrderServiceError(f"Order with ID {order_id} not found", FailureKind.NOT_FOUND, order_id, 404)


@pytest.fixture
def store():
    return FakePaymentStore()


@pytest.fixture
def order_client():
    client = AsyncMock(spec=OrderServiceClient)
    client.advance_order_status.return_value = None
    return client


@pytest.fixture
def metrics():
    return MagicMock(spec=MetricsSink)


@pytest.fixture
def retry_policy():
    # No backoff so exhausted retries finish instantly
    return RetryPolicy(max_attempts=3, wait_multiplier=0, wait_min=0, wait_max=0)


@pytest.fixture
def coordinator(store, order_client, metrics, retry_policy):
    return PaymentCoordinator(store=store, order_client=order_client, metrics=metrics, retry_policy=retry_policy)
