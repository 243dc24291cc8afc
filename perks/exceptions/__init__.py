"""Custom exceptions for the perks portal."""


class PortalError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(PortalError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(PortalError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class UnauthorizedError(PortalError):
    """Raised when the request carries no valid employee session."""
    def __init__(self, message="Unauthorized"):
        super().__init__(message, 401)


class AccountLockedError(PortalError):
    """Raised when a locked employee tries to use the portal."""
    def __init__(self, message="Account is locked. Contact your administrator."):
        super().__init__(message, 423)


# ----- Cart -----

class InvalidQuantityError(BusinessLogicError):
    def __init__(self, message="Invalid quantity"):
        super().__init__(message)


class OutOfStockError(BusinessLogicError):
    """Raised when a cart quantity exceeds the product's stock."""
    def __init__(self, product_name, requested, available):
        message = f"Insufficient stock for {product_name}: requested {requested}, available {available}"
        super().__init__(message, payload={'requested': requested, 'available': available})


class PriceSlabError(BusinessLogicError):
    """Invalid or ambiguous quantity price slabs."""


# ----- Checkout -----

class EmptyCartError(BusinessLogicError):
    def __init__(self):
        super().__init__("Cart is empty")


class SelectionLimitReachedError(BusinessLogicError):
    def __init__(self, max_selections):
        super().__init__("Selection limit reached", payload={'maxSelections': max_selections})


class ProductUnavailableError(BusinessLogicError):
    def __init__(self, product_name):
        super().__init__(f"Product {product_name} unavailable")


class InvalidDeliveryError(BusinessLogicError):
    """Unknown delivery method or missing delivery address."""


class InsufficientPointsError(BusinessLogicError):
    """
    Internal signal: the cart costs more points than the employee holds.

    Carries the checkout quote so the caller can switch to the co-pay path.
    """
    def __init__(self, quote):
        super().__init__("Insufficient points", payload={'copayRequired': True})
        self.quote = quote


class CheckoutConflictError(PortalError):
    """Stock or points changed underneath a checkout commit."""
    def __init__(self, message="Checkout conflicted with a concurrent update, please retry"):
        super().__init__(message, 409)


# ----- Co-pay -----

class PaymentGatewayError(Exception):
    """Low-level failure talking to the payment gateway."""
    def __init__(self, message, response=None):
        super().__init__(message)
        self.message = message
        self.response = response


class PaymentInitiationFailedError(PortalError):
    def __init__(self, message="Failed to initiate payment"):
        super().__init__(message, 502)


class PaymentNotVerifiedError(BusinessLogicError):
    def __init__(self, message="Payment not completed"):
        super().__init__(message)


class AmountMismatchError(BusinessLogicError):
    def __init__(self, expected, paid):
        super().__init__("Amount mismatch", payload={'expected': str(expected), 'paid': str(paid)})
