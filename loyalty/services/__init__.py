"""
Business logic services for the loyalty portal.
"""
from .eligibility import MemberSnapshot, TargetingRules, is_eligible, filter_eligible
from .pricing import effective_price
from .settings_service import SettingsService
from .tier_service import TierService, TierThreshold, resolve_tier, validate_tier_settings
from .ledger_service import LedgerService
from .redemption_service import RedemptionService
from .completion_service import CompletionService
from .review_service import ReviewService
from .membership_service import MembershipService, determine_approval_status

__all__ = [
    'MemberSnapshot',
    'TargetingRules',
    'is_eligible',
    'filter_eligible',
    'effective_price',
    'SettingsService',
    'TierService',
    'TierThreshold',
    'resolve_tier',
    'validate_tier_settings',
    'LedgerService',
    'RedemptionService',
    'CompletionService',
    'ReviewService',
    'MembershipService',
    'determine_approval_status',
]
