from typing import Dict, Optional


class StoreError(Exception):
    """Base class for every error raised by the storefront core."""


class PersistenceError(StoreError):
    """
    Reading or writing the on-device key-value store failed.
    Stores log it and carry on with their in-memory state.
    """


class NetworkError(StoreError):
    """
    A backend call failed, timed out or answered with a non-2xx status.
    Always propagated so the caller can offer a retry.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(StoreError, ValueError):
    """
    Malformed user input. `errors` maps a field name to its message.
    """

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class InvalidTransition(StoreError):
    """Raised when an order status change is not allowed."""

    def __init__(self, order_id: Optional[str], current, requested) -> None:
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Order {order_id}: cannot move from '{current}' to '{requested}'."
        )
