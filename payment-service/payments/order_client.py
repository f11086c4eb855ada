"""
Thin client for the order service.

It reports what happened on the wire and nothing more: every failure is raised
as an ``OrderServiceError`` whose ``kind`` says whether retrying could help.
Retry decisions belong to the caller.
"""
import enum
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError as SchemaError

from payments.config import ORDER_SERVICE_TIMEOUT, ORDER_SERVICE_URL
from payments.schemas import OrderRead

logger = structlog.get_logger(__name__)


class FailureKind(enum.Enum):
    NOT_FOUND = "not_found"  # the order does not exist, retrying won't change that
    TRANSIENT = "transient"  # connectivity, timeout, 5xx


class OrderServiceError(Exception):
    def __init__(self, message: str, kind: FailureKind, order_id: int, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.order_id = order_id
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.kind is FailureKind.TRANSIENT


class OrderServiceClient:
    def __init__(self, http_client: httpx.AsyncClient, base_url: str = ORDER_SERVICE_URL):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    async def fetch_order(self, order_id: int) -> OrderRead:
        response = await self._send("GET", f"{self.base_url}/{order_id}", order_id)
        try:
            return OrderRead.model_validate(response.json())
        except (ValueError, SchemaError) as e:
            raise OrderServiceError(
                f"Order service returned an unreadable body for order {order_id}: {e}",
                FailureKind.TRANSIENT,
                order_id,
                response.status_code,
            ) from e

    async def advance_order_status(self, order_id: int) -> None:
        await self._send("PATCH", f"{self.base_url}/{order_id}/status", order_id)

    async def _send(self, method: str, url: str, order_id: int) -> httpx.Response:
        logger.debug("order_service_request", method=method, url=url, order_id=order_id)
        try:
            response = await self.http_client.request(method, url)
        except httpx.HTTPError as e:
            raise OrderServiceError(
                f"Order service unreachable for order {order_id}: {e}",
                FailureKind.TRANSIENT,
                order_id,
            ) from e

        if response.status_code == 404:
            raise OrderServiceError(
                f"Order with ID {order_id} not found",
                FailureKind.NOT_FOUND,
                order_id,
                response.status_code,
            )
        if not response.is_success:
            raise OrderServiceError(
                f"Order service answered {response.status_code} for order {order_id}",
                FailureKind.TRANSIENT,
                order_id,
                response.status_code,
            )
        return response


def build_http_client(timeout: float = ORDER_SERVICE_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)
