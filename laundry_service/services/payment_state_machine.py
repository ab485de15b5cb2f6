"""
Payment state machine: transition table, completion stamping, refunds
"""
import secrets
import string
import time
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from laundry_service.exceptions import InvalidPaymentTransitionError, ValidationError
from laundry_service.models.enums import PaymentStatus
from laundry_service.models.payment import Payment, PaymentStatusHistory

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PROCESSING, PaymentStatus.CANCELLED}),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING}),
    PaymentStatus.COMPLETED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}

_TXN_ALPHABET = string.ascii_lowercase + string.digits


def synthesize_transaction_id() -> str:
    suffix = "".join(secrets.choice(_TXN_ALPHABET) for _ in range(9))
    return f"TXN_{int(time.time() * 1000)}_{suffix}"


def can_transition(current, target) -> bool:
    return PaymentStatus(target) in PAYMENT_TRANSITIONS[PaymentStatus(current)]


def path_between(current, target) -> Optional[list[PaymentStatus]]:
    """Shortest chain of legal moves from current to target (excluding current), None if unreachable"""
    current, target = PaymentStatus(current), PaymentStatus(target)
    if current == target:
        return []
    queue = deque([(current, [])])
    seen = {current}
    while queue:
        status, path = queue.popleft()
        for nxt in sorted(PAYMENT_TRANSITIONS[status], key=lambda s: s.value):
            if nxt in seen:
                continue
            if nxt == target:
                return path + [nxt]
            seen.add(nxt)
            queue.append((nxt, path + [nxt]))
    return None


def record_status(payment: Payment, status: PaymentStatus, actor_id: str, notes: str = "") -> None:
    payment.status_history.append(
        PaymentStatusHistory(
            status=status.value,
            changed_by=actor_id,
            changed_at=datetime.now(timezone.utc),
            notes=notes or None,
        )
    )


def apply_transition(
    payment: Payment,
    target: PaymentStatus,
    actor_id: str,
    notes: str = "",
    transaction_id: Optional[str] = None,
) -> PaymentStatus:
    """
    Move a payment to ``target`` if the table allows it

    Returns:
        The status the payment held before the move

    Raises:
        InvalidPaymentTransitionError: If target is not reachable from the current status
    """
    current = PaymentStatus(payment.status)
    target = PaymentStatus(target)
    if not can_transition(current, target):
        raise InvalidPaymentTransitionError(current.value, target.value)

    now = datetime.now(timezone.utc)
    record_status(payment, target, actor_id, notes)
    payment.status = target.value
    payment.updated_at = now
    if transaction_id:
        payment.transaction_id = transaction_id

    if target == PaymentStatus.PROCESSING:
        payment.processed_at = now
    elif target == PaymentStatus.COMPLETED:
        payment.completed_at = now
        if not payment.transaction_id:
            payment.transaction_id = synthesize_transaction_id()
    elif target == PaymentStatus.FAILED:
        payment.failed_at = now
    return current


def apply_refund(payment: Payment, amount: float, reason: str = "") -> None:
    """Annotate a refund; the payment status is left untouched"""
    if amount < 0:
        raise ValidationError("Refund amount cannot be negative")
    if amount > payment.amount:
        raise ValidationError(
            f"Refund amount {amount} cannot exceed payment amount {payment.amount}"
        )
    now = datetime.now(timezone.utc)
    payment.refund_amount = round(amount, 2)
    payment.refunded_at = now
    payment.refund_reason = reason[:200] if reason else None
    payment.updated_at = now
