"""Custom exceptions for the quote request portal."""

from decimal import Decimal


class PortalError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Ein interner Fehler ist aufgetreten.", status_code=500, payload=None):
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


class ValidationError(BusinessLogicError):
    """Malformed or incomplete input; carries field-level messages."""
    def __init__(self, message="Bitte überprüfen Sie Ihre Eingaben.", errors=None):
        super().__init__(message, status_code=422, payload={'errors': errors or {}})
        self.errors = errors or {}


class NotFoundError(PortalError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Eintrag nicht gefunden.", payload=None):
        super().__init__(message, 404, payload)


class AuthenticationRequiredError(PortalError):
    """Raised for anonymous callers of a protected operation."""
    def __init__(self, message="Bitte melden Sie sich an."):
        super().__init__(message, 401)


class UnauthorizedError(PortalError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Keine Berechtigung für diese Aktion."):
        super().__init__(message, 403)


class PricingError(BusinessLogicError):
    """Raised when the calculator receives inconsistent cart data."""
    def __init__(self, message):
        super().__init__(f"Ungültige Warenkorbdaten: {message}", status_code=422)


class DuplicateSubmissionError(BusinessLogicError):
    """Raised when the same submission attempt arrives twice."""
    def __init__(self, order_number):
        super().__init__(
            f"Diese Anfrage wurde bereits übermittelt ({order_number}).",
            status_code=409,
            payload={'order_number': order_number}
        )
        self.order_number = order_number


class OrderPersistenceError(PortalError):
    """Raised when the order could not be stored; nothing was persisted."""
    def __init__(self, message="Ihre Anfrage konnte nicht gespeichert werden. Bitte versuchen Sie es erneut."):
        super().__init__(message, 503)


# =====================================================
# DISCOUNT CODES
# =====================================================

class DiscountCodeError(BusinessLogicError):
    """Base class for rejected discount codes."""
    reason = 'invalid'

    def __init__(self, message, payload=None):
        payload = dict(payload or ())
        payload['reason'] = self.reason
        super().__init__(message, status_code=400, payload=payload)


class InvalidDiscountCodeError(DiscountCodeError):
    """No such code, or inactive / outside its validity window / exhausted."""
    reason = 'invalid_code'

    def __init__(self, message="Der Rabattcode ist ungültig oder abgelaufen."):
        super().__init__(message)


class DiscountCodeAlreadyUsedError(DiscountCodeError):
    """The user already redeemed this code."""
    reason = 'already_used'

    def __init__(self, message="Sie haben diesen Rabattcode bereits verwendet."):
        super().__init__(message)


class MinimumOrderValueNotMetError(DiscountCodeError):
    """Order net total is below the code's minimum order value."""
    reason = 'minimum_not_met'

    def __init__(self, min_order_value):
        self.min_order_value = Decimal(str(min_order_value))
        from app.utils.formatters import money_de
        super().__init__(
            f"Mindestbestellwert von {money_de(self.min_order_value)} nicht erreicht.",
            payload={'min_order_value': str(self.min_order_value)}
        )


class DiscountNotAuthorizedError(UnauthorizedError):
    """The caller does not own the cart presenting the total."""
    reason = 'not_authorized'

    def __init__(self, message="Dieser Warenkorb gehört nicht zu Ihrem Konto."):
        super().__init__(message)
        self.payload = {'reason': self.reason}
