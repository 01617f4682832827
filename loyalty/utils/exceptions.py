"""
Custom exceptions for loyalty business logic.

Every failure a service can report is a LoyaltyError subclass carrying a
machine-readable code and the HTTP status the API layer answers with.
Services roll back the session before raising, so a raised error never
leaves a partial balance, stock or ledger change behind.

Completing an item twice is not an error: completion results carry
`already_completed=True` instead.
"""


class LoyaltyError(Exception):
    """Base exception for all loyalty business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "LOYALTY_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class UnauthorizedError(LoyaltyError):
    """Caller does not own the target member or request."""

    status_code = 403

    def __init__(self, message: str = "Not authorized for this operation"):
        super().__init__(message, "UNAUTHORIZED")


class NotFoundError(LoyaltyError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper().replace(' ', '_')}_NOT_FOUND")


class MemberNotFoundError(NotFoundError):
    """Member not found."""

    def __init__(self, identifier=None):
        super().__init__("Member", identifier)


class RewardNotFoundError(NotFoundError):
    """Reward not found."""

    def __init__(self, identifier=None):
        super().__init__("Reward", identifier)


class ItemNotFoundError(NotFoundError):
    """Content, mission, receipt or redemption not found."""

    def __init__(self, kind: str = "Item", identifier=None):
        super().__init__(kind, identifier)
        self.code = "ITEM_NOT_FOUND"


class NotActiveError(LoyaltyError):
    """Item is switched off (inactive, unpublished or outside its date window)."""

    status_code = 409

    def __init__(self, kind: str, identifier=None, reason: str = "not active"):
        message = f"{kind} {identifier} is {reason}" if identifier is not None else f"{kind} is {reason}"
        super().__init__(message, "NOT_ACTIVE")


class RewardNotActiveError(NotActiveError):
    def __init__(self, identifier=None):
        super().__init__("Reward", identifier)
        self.code = "REWARD_NOT_ACTIVE"


class IneligibleError(LoyaltyError):
    """Targeting rules exclude the member."""

    status_code = 403

    def __init__(self, kind: str = "Item", identifier=None):
        message = f"Member is not eligible for this {kind.lower()}"
        if identifier is not None:
            message = f"Member is not eligible for {kind.lower()} {identifier}"
        super().__init__(message, "INELIGIBLE")


class PriceMismatchError(LoyaltyError):
    """Client-supplied price no longer matches the resolved price."""

    status_code = 409

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        message = f"Price changed. Expected: {expected}, Current: {actual}"
        super().__init__(message, "PRICE_MISMATCH")


class InsufficientBalanceError(LoyaltyError):
    """Not enough balance for the operation."""

    status_code = 422

    def __init__(self, current: int, required: int, currency: str = "points"):
        self.current = current
        self.required = required
        self.currency = currency
        message = f"Insufficient {currency}. Current: {current}, Required: {required}"
        super().__init__(message, "INSUFFICIENT_BALANCE")


class InsufficientPointsError(InsufficientBalanceError):
    """Not enough points for the operation."""

    def __init__(self, current: int, required: int):
        super().__init__(current, required, "points")
        self.code = "INSUFFICIENT_POINTS"


class InsufficientCoinsError(InsufficientBalanceError):
    """Not enough coins for the operation."""

    def __init__(self, current: int, required: int):
        super().__init__(current, required, "coins")
        self.code = "INSUFFICIENT_COINS"


class OutOfStockError(LoyaltyError):
    """Reward stock is exhausted."""

    status_code = 409

    def __init__(self, reward_id=None):
        self.reward_id = reward_id
        super().__init__("Out of stock", "OUT_OF_STOCK")


class ValidationError(LoyaltyError):
    """Invalid input data."""

    status_code = 400

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class StateConflictError(LoyaltyError):
    """Operation not allowed in the record's current status."""

    status_code = 409

    def __init__(self, resource: str, from_status: str, to_status: str = None):
        self.from_status = from_status
        self.to_status = to_status
        if to_status:
            message = f"Cannot change {resource} status from '{from_status}' to '{to_status}'"
        else:
            message = f"{resource} is already '{from_status}'"
        super().__init__(message, "INVALID_STATUS_TRANSITION")


class ConfigurationError(LoyaltyError):
    """Application configuration error (e.g. broken tier settings)."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")
