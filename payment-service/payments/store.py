"""Storage for payment rows."""
from typing import List, Optional, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from payments.exceptions import ConcurrentModificationError
from payments.models import Payment

logger = structlog.get_logger(__name__)


class PaymentStore(Protocol):
    async def find_by_id(self, payment_id: int) -> Optional[Payment]: ...

    async def find_all(self) -> List[Payment]: ...

    async def save(self, payment: Payment) -> Payment:
        """Insert the payment if it is new, update it otherwise. The id never changes."""
        ...


class SqlAlchemyPaymentStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, payment_id: int) -> Optional[Payment]:
        return await self.session.get(Payment, payment_id)

    async def find_all(self) -> List[Payment]:
        result = await self.session.execute(select(Payment).order_by(Payment.payment_id))
        return list(result.scalars().all())

    async def save(self, payment: Payment) -> Payment:
        payment_id = payment.payment_id
        self.session.add(payment)
        try:
            await self.session.commit()
        except StaleDataError:
            await self.session.rollback()
            logger.warning("payment_concurrent_update", payment_id=payment_id)
            raise ConcurrentModificationError(payment_id)
        await self.session.refresh(payment)
        return payment
