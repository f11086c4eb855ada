from sqlalchemy import Column, Integer, Boolean, DateTime, Enum
from sqlalchemy.orm import declarative_base
from datetime import datetime
import enum

Base = declarative_base()

class PaymentStatus(enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

class OrderStatus(enum.Enum):
    # Only the order states this service interprets; the order service owns the rest.
    ORDERED = "ORDERED"
    IN_PAYMENT = "IN_PAYMENT"

class Payment(Base):
    __tablename__ = "payments"

    payment_id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, index=True, nullable=False)
    is_payed = Column(Boolean, default=False, nullable=False)
    payment_status = Column(
        Enum(PaymentStatus, name="payment_status", create_constraint=True),
        default=PaymentStatus.NOT_STARTED,
        nullable=False,
    )
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Concurrent read-modify-write on the same row fails with StaleDataError
    __mapper_args__ = {"version_id_col": version}
