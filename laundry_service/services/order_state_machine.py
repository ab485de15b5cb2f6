"""
Order state machine: transition table, actor authorization, history
"""
from datetime import datetime, timezone

from laundry_service.exceptions import ForbiddenError, InvalidTransitionError
from laundry_service.models.enums import ActorRole, OrderStatus
from laundry_service.models.order import Order, OrderStatusHistory
from laundry_service.schemas.actor import Actor

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.ASSIGNED, OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.ASSIGNED: frozenset({OrderStatus.CONFIRMED, OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED}),
    OrderStatus.READY_FOR_PICKUP: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.READY_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.READY_FOR_DELIVERY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_ORDER_STATUSES = frozenset(s for s, targets in ORDER_TRANSITIONS.items() if not targets)


def can_transition(current, target) -> bool:
    return OrderStatus(target) in ORDER_TRANSITIONS[OrderStatus(current)]


def is_terminal(order: Order) -> bool:
    return OrderStatus(order.status) in TERMINAL_ORDER_STATUSES


def authorize_transition(order: Order, actor: Actor, target: OrderStatus) -> None:
    """Customers may only cancel their own orders; providers only act on orders bound to them"""
    if actor.role == ActorRole.CUSTOMER:
        if order.customer_id != actor.id:
            raise ForbiddenError("Access denied")
        if target != OrderStatus.CANCELLED:
            raise ForbiddenError("Customers can only cancel their orders")
    elif actor.role == ActorRole.SERVICE_PROVIDER:
        if order.service_provider_id != actor.id:
            raise ForbiddenError("You can only update orders assigned to you")


def record_status(order: Order, status: OrderStatus, actor_id: str, notes: str = "") -> None:
    order.status_history.append(
        OrderStatusHistory(
            status=status.value,
            changed_by=actor_id,
            changed_at=datetime.now(timezone.utc),
            notes=notes or None,
        )
    )


def check_transition(order: Order, target) -> tuple[OrderStatus, OrderStatus]:
    """Raise InvalidTransitionError unless ``target`` is reachable from the order's status"""
    current = OrderStatus(order.status)
    target = OrderStatus(target)
    if target not in ORDER_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)
    return current, target


def apply_transition(order: Order, target: OrderStatus, actor: Actor, notes: str = "") -> OrderStatus:
    """
    Move an order to ``target`` if the table allows it

    Returns:
        The status the order held before the move

    Raises:
        InvalidTransitionError: If target is not reachable from the current status
    """
    current, target = check_transition(order, target)

    record_status(order, target, actor.id, notes)
    order.status = target.value
    order.updated_at = datetime.now(timezone.utc)
    if target == OrderStatus.CANCELLED and notes:
        order.cancellation_reason = notes[:200]
    return current


def history_is_consistent(order: Order) -> bool:
    """Every consecutive history pair after the seed entry is a legal move"""
    statuses = [OrderStatus(entry.status) for entry in order.status_history]
    return all(can_transition(a, b) for a, b in zip(statuses, statuses[1:]))
