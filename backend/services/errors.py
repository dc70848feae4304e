"""
Erreurs métier du moteur de commandes.

Levées par la couche service quand une règle est violée.
La couche API les traduit en réponse JSON {code, message}.
Aucune n'est rejouée automatiquement.
"""

from __future__ import annotations


class FulfillmentError(Exception):
    code = "FULFILLMENT_ERROR"
    http_status = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class InvalidTransition(FulfillmentError):
    """Status transition not allowed from the current order status."""

    code = "INVALID_TRANSITION"
    http_status = 409


class MissingDeliveryDate(FulfillmentError):
    """Expected delivery date is required before confirming the order."""

    code = "MISSING_DELIVERY_DATE"
    http_status = 422


class PastDeliveryDate(FulfillmentError):
    """Expected delivery date must be in the future."""

    code = "PAST_DELIVERY_DATE"
    http_status = 422


class InsufficientStock(FulfillmentError):
    """Not enough stock at the location."""

    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(
        self,
        message: str | None = None,
        *,
        product_id: int | None = None,
        available: int | None = None,
        requested: int | None = None,
    ):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        if message is None and product_id is not None:
            message = (
                f"Insufficient stock for product {product_id} "
                f"(available={available}, requested={requested})"
            )
        super().__init__(message)


class ImmutableAfterShipment(FulfillmentError):
    """Quantities and delivery date can no longer be edited for this order."""

    code = "IMMUTABLE_AFTER_SHIPMENT"
    http_status = 409


class EmptyReason(FulfillmentError):
    """A non-empty reason is required."""

    code = "EMPTY_REASON"
    http_status = 422


class NotFound(FulfillmentError):
    """Resource not found."""

    code = "NOT_FOUND"
    http_status = 404


class InvalidQuantity(FulfillmentError):
    """Invalid quantity."""

    code = "INVALID_QUANTITY"
    http_status = 422


class NoDiscrepancy(FulfillmentError):
    """Received quantity matches the shipped quantity, nothing to report."""

    code = "NO_DISCREPANCY"
    http_status = 409


class Forbidden(FulfillmentError):
    """Caller role is not allowed to perform this action."""

    code = "FORBIDDEN"
    http_status = 403
