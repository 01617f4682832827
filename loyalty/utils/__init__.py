"""
Utility modules for the loyalty portal.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    loyalty_error_response,
    bad_request,
    unauthorized,
    forbidden,
    not_found
)
from .exceptions import (
    LoyaltyError,
    UnauthorizedError,
    NotFoundError,
    MemberNotFoundError,
    RewardNotFoundError,
    ItemNotFoundError,
    NotActiveError,
    RewardNotActiveError,
    IneligibleError,
    PriceMismatchError,
    InsufficientBalanceError,
    InsufficientPointsError,
    InsufficientCoinsError,
    OutOfStockError,
    ValidationError,
    StateConflictError,
    ConfigurationError
)
