"""
Payment state machine.

    NOT_STARTED ──► IN_PROGRESS ──► COMPLETED
         │               │
         └──────►  CANCELED  ◄──────┘

COMPLETED and CANCELED are terminal. Nothing here touches storage or the
network; the coordinator applies the results.
"""
from dataclasses import dataclass
from typing import Dict

from payments.models import PaymentStatus

ADVANCE_TRANSITIONS: Dict[PaymentStatus, PaymentStatus] = {
    PaymentStatus.NOT_STARTED: PaymentStatus.IN_PROGRESS,
    PaymentStatus.IN_PROGRESS: PaymentStatus.COMPLETED,
}

CANCELABLE = frozenset({PaymentStatus.NOT_STARTED, PaymentStatus.IN_PROGRESS})


class IllegalTransitionError(Exception):
    reason = "illegal_transition"

    def __init__(self, current: PaymentStatus, message: str):
        super().__init__(message)
        self.current = current


class AlreadyCompletedError(IllegalTransitionError):
    reason = "already_completed"


class AlreadyCanceledError(IllegalTransitionError):
    reason = "already_canceled"


@dataclass(frozen=True)
class Transition:
    previous: PaymentStatus
    current: PaymentStatus

    @property
    def completes_payment(self) -> bool:
        return self.previous is PaymentStatus.IN_PROGRESS and self.current is PaymentStatus.COMPLETED


def is_terminal(status: PaymentStatus) -> bool:
    return status not in ADVANCE_TRANSITIONS and status not in CANCELABLE


def _reject(current: PaymentStatus, action: str) -> IllegalTransitionError:
    if current is PaymentStatus.COMPLETED:
        return AlreadyCompletedError(current, f"Payment is already COMPLETED and cannot be {action}")
    if current is PaymentStatus.CANCELED:
        return AlreadyCanceledError(current, f"Payment is already CANCELED and cannot be {action}")
    return IllegalTransitionError(current, f"Unknown payment status: {current}")


def advance(current: PaymentStatus) -> Transition:
    """Move one step forward along the lifecycle."""
    try:
        return Transition(previous=current, current=ADVANCE_TRANSITIONS[current])
    except KeyError:
        raise _reject(current, "updated") from None


def cancel(current: PaymentStatus) -> Transition:
    if current not in CANCELABLE:
        raise _reject(current, "canceled")
    return Transition(previous=current, current=PaymentStatus.CANCELED)
