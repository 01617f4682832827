"""
Points and coins ledgers.

Both ledgers are append-only: a row is written once per balance-affecting
event and never updated or deleted. `amount` is always positive; the
direction is carried by `transaction_type`.
"""
from datetime import datetime
from enum import Enum
from sqlalchemy.orm import declared_attr
from ..extensions import db


class TransactionType(str, Enum):
    EARN = 'earn'
    SPEND = 'spend'


class TransactionSource(str, Enum):
    DAILY_CHECKIN = 'daily_checkin'
    CONTENT = 'content'
    QUIZ = 'quiz'
    SURVEY = 'survey'
    RECEIPT = 'receipt'
    GAME = 'game'
    MISSION = 'mission'
    REWARD = 'reward'
    REGISTRATION = 'registration'
    EXCHANGE = 'exchange'
    ADMIN = 'admin'


class LedgerEntryMixin:
    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.Integer, nullable=False)
    transaction_type = db.Column(db.String(10), nullable=False)
    source = db.Column(db.String(30), nullable=False)
    source_id = db.Column(db.String(64))
    description = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @declared_attr
    def profile_id(cls):
        return db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)

    @property
    def signed_amount(self) -> int:
        return self.amount if self.transaction_type == TransactionType.EARN.value else -self.amount

    def to_dict(self):
        return {
            'id': self.id,
            'profile_id': self.profile_id,
            'amount': self.amount,
            'transaction_type': self.transaction_type,
            'source': self.source,
            'source_id': self.source_id,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class PointsTransaction(LedgerEntryMixin, db.Model):
    """Every points movement for a member."""
    __tablename__ = 'points_transactions'
    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_points_transactions_amount_positive'),
    )

    def __repr__(self):
        return f'<PointsTransaction {self.id}: {self.transaction_type} {self.amount} pts for profile {self.profile_id}>'


class CoinsTransaction(LedgerEntryMixin, db.Model):
    """Every coins movement for a member."""
    __tablename__ = 'coins_transactions'
    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_coins_transactions_amount_positive'),
    )

    def __repr__(self):
        return f'<CoinsTransaction {self.id}: {self.transaction_type} {self.amount} coins for profile {self.profile_id}>'
