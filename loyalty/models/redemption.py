"""
Reward redemption requests.
"""
import secrets
from datetime import datetime
from enum import Enum
from typing import Any, Dict
from ..extensions import db


class RedemptionStatus(str, Enum):
    PENDING = 'pending'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


# Allowed administrative moves; completed and cancelled are terminal
REDEMPTION_TRANSITIONS = {
    RedemptionStatus.PENDING.value: {
        RedemptionStatus.PROCESSING.value,
        RedemptionStatus.SHIPPED.value,
        RedemptionStatus.CANCELLED.value,
    },
    RedemptionStatus.PROCESSING.value: {
        RedemptionStatus.SHIPPED.value,
        RedemptionStatus.COMPLETED.value,
        RedemptionStatus.CANCELLED.value,
    },
    RedemptionStatus.SHIPPED.value: {
        RedemptionStatus.COMPLETED.value,
    },
    RedemptionStatus.COMPLETED.value: set(),
    RedemptionStatus.CANCELLED.value: set(),
}


class RewardRedemption(db.Model):
    """
    A member's request for a reward.

    Created in the same transaction as the points deduction and stock
    decrement. `points_spent` is the price actually charged and never
    changes afterwards.
    """
    __tablename__ = 'reward_redemptions'
    __table_args__ = (
        db.Index('ix_redemptions_profile_created', 'profile_id', 'created_at'),
        db.Index('ix_redemptions_status', 'status'),
    )

    id = db.Column(db.Integer, primary_key=True)
    # No cascade: a member with redemptions cannot be deleted
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False)
    reward_id = db.Column(db.Integer, db.ForeignKey('rewards.id', ondelete='RESTRICT'), nullable=False)

    redemption_code = db.Column(db.String(50), unique=True, nullable=False)  # RD-YYYYMMDD-XXXXXXXX
    points_spent = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=RedemptionStatus.PENDING.value)

    shipping_address = db.Column(db.Text, nullable=False)
    tracking_number = db.Column(db.String(100))
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    shipped_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)

    reward = db.relationship('Reward')
    profile = db.relationship('Profile', backref=db.backref('redemptions', lazy='dynamic'))

    def can_transition_to(self, status: str) -> bool:
        return status in REDEMPTION_TRANSITIONS.get(self.status, set())

    def __repr__(self):
        return f'<RewardRedemption {self.redemption_code}: {self.points_spent} pts>'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'profile_id': self.profile_id,
            'reward_id': self.reward_id,
            'reward_name': self.reward.name if self.reward else None,
            'redemption_code': self.redemption_code,
            'points_spent': self.points_spent,
            'status': self.status,
            'shipping_address': self.shipping_address,
            'tracking_number': self.tracking_number,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'shipped_at': self.shipped_at.isoformat() if self.shipped_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
        }

    @staticmethod
    def generate_redemption_code() -> str:
        """Generate unique redemption reference code."""
        today = datetime.utcnow().strftime('%Y%m%d')
        return f'RD-{today}-{secrets.token_hex(4).upper()}'
