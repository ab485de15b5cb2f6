"""Custom exceptions for the laundry order service."""


class LaundryServiceError(Exception):
    """Base exception for all service errors."""

    pass


class InvalidTransitionError(LaundryServiceError):
    """Raised when an order status move is not in the transition table."""

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot change order status from {current} to {target}")


class InvalidPaymentTransitionError(LaundryServiceError):
    """Raised when a payment status move is not in the transition table."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid payment status transition from {current} to {target}")


class NotFoundError(LaundryServiceError):
    """Raised when an order, payment, provider or clothing item doesn't exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ForbiddenError(LaundryServiceError):
    """Raised when the acting user lacks the role or ownership for a mutation."""

    pass


class ConflictError(LaundryServiceError):
    """Raised when a mutation collides with the record's current state."""

    pass


class ValidationError(LaundryServiceError):
    """Raised on malformed monetary, address or index input."""

    pass


class PaymentGatewayError(LaundryServiceError):
    """Raised when the payment gateway rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class TransientGatewayError(PaymentGatewayError):
    """Raised when the gateway is unreachable or timed out. Safe to retry."""

    pass


class UnverifiedEventError(LaundryServiceError):
    """Raised when a webhook signature cannot be verified."""

    def __init__(self):
        super().__init__("Invalid webhook signature")
