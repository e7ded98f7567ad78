# portl/core/exceptions.py
"""
Domain errors raised by the checkout services.

All of them subclass ValueError so callers that only care about "the request
was rejected" can keep catching ValueError. ``status_code`` is the HTTP status
the action endpoints answer with.
"""


class CheckoutError(ValueError):
    """A request that failed validation (bad quantity, empty cart, ...)."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CheckoutError):
    status_code = 404


class ForbiddenError(CheckoutError):
    """The entity exists but belongs to another user."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class InvalidOrderStateError(CheckoutError):
    """The order is not in a state that allows the requested transition."""

    status_code = 409


class InventoryConflictError(CheckoutError):
    """
    Confirming the order would push a ticket type (or an allocation tier)
    past its capacity. The confirmation is rolled back and the order stays
    PENDING; the payment needs manual reconciliation.
    """

    status_code = 409

    def __init__(self, message: str, ticket_type_id: str = None, price_tier_id: str = None):
        super().__init__(message)
        self.ticket_type_id = ticket_type_id
        self.price_tier_id = price_tier_id


class PaymentAmountMismatchError(CheckoutError):
    """
    The gateway charged an amount other than the order's total. The order
    stays PENDING; the payment needs manual reconciliation.
    """

    status_code = 409
