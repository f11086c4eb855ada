from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from payments.models import Payment, PaymentStatus


class OrderRead(BaseModel):
    """Order as reported by the order service. Fields we don't interpret are kept as-is."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    order_id: int = Field(..., alias="orderId")
    order_status: str = Field(..., alias="orderStatus")


class PaymentCreate(BaseModel):
    # Optional here so a missing order id is reported by the service, not by request parsing
    order_id: Optional[int] = Field(None, examples=[1])
    is_payed: bool = False
    payment_status: PaymentStatus = PaymentStatus.NOT_STARTED


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: int
    order_id: int
    is_payed: bool
    payment_status: PaymentStatus
    order: Optional[OrderRead] = None


def to_payment_read(payment: Payment, order: Optional[OrderRead] = None) -> PaymentRead:
    return PaymentRead(
        payment_id=payment.payment_id,
        order_id=payment.order_id,
        is_payed=payment.is_payed,
        payment_status=payment.payment_status,
        order=order,
    )


def to_payment_row(payment_in: PaymentCreate) -> Payment:
    return Payment(
        order_id=payment_in.order_id,
        is_payed=payment_in.is_payed,
        payment_status=payment_in.payment_status,
    )
