"""
Database models for the loyalty portal.
Members, ledgers, targetable items, completion records and redemptions.
"""
from .member import (
    Tier,
    MemberType,
    ApprovalStatus,
    FarmPosition,
    CompanyBusiness,
    VetType,
    SPONSOR_SUB_TYPE,
    Profile,
    FarmDetail,
    CompanyDetail,
    VetDetail,
    TierSetting,
)
from .ledger import TransactionType, TransactionSource, PointsTransaction, CoinsTransaction
from .catalog import ContentType, MissionType, Content, QuizQuestion, SurveyQuestion, Mission, Reward
from .completion import (
    ReviewStatus,
    ContentProgress,
    MissionCompletion,
    DailyCheckin,
    CheckinReward,
    Receipt,
)
from .redemption import RedemptionStatus, REDEMPTION_TRANSITIONS, RewardRedemption
from .settings import SystemSetting

__all__ = [
    # Enums
    'Tier',
    'MemberType',
    'ApprovalStatus',
    'FarmPosition',
    'CompanyBusiness',
    'VetType',
    'SPONSOR_SUB_TYPE',
    'TransactionType',
    'TransactionSource',
    'ContentType',
    'MissionType',
    'ReviewStatus',
    'RedemptionStatus',
    'REDEMPTION_TRANSITIONS',
    # Members
    'Profile',
    'FarmDetail',
    'CompanyDetail',
    'VetDetail',
    'TierSetting',
    # Ledgers
    'PointsTransaction',
    'CoinsTransaction',
    # Catalog
    'Content',
    'QuizQuestion',
    'SurveyQuestion',
    'Mission',
    'Reward',
    # Completions
    'ContentProgress',
    'MissionCompletion',
    'DailyCheckin',
    'CheckinReward',
    'Receipt',
    # Redemptions
    'RewardRedemption',
    # Settings
    'SystemSetting',
]
