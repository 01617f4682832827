"""
Completion records.

One row per natural key: (profile, content), (profile, mission) and
(profile, check-in date). The unique constraints are what stops a racing
duplicate submission from being awarded twice.
"""
from datetime import datetime
from enum import Enum
from ..extensions import db


class ReviewStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class ContentProgress(db.Model):
    __tablename__ = 'content_progress'
    __table_args__ = (
        db.UniqueConstraint('profile_id', 'content_id', name='uq_content_progress_profile_content'),
    )

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    content_id = db.Column(db.Integer, db.ForeignKey('content.id'), nullable=False)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    progress_percent = db.Column(db.Integer, default=0, nullable=False)
    points_earned = db.Column(db.Integer, default=0, nullable=False)
    quiz_score = db.Column(db.Integer)
    survey_responses = db.Column(db.JSON)
    completed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ContentProgress profile={self.profile_id} content={self.content_id} done={self.is_completed}>'

    def to_dict(self):
        return {
            'id': self.id,
            'profile_id': self.profile_id,
            'content_id': self.content_id,
            'is_completed': self.is_completed,
            'progress_percent': self.progress_percent,
            'points_earned': self.points_earned,
            'quiz_score': self.quiz_score,
            'survey_responses': self.survey_responses,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class MissionCompletion(db.Model):
    """
    A member's submission for a mission. QR and location proofs are approved
    on the spot; manual proofs wait for an admin.
    """
    __tablename__ = 'mission_completions'
    __table_args__ = (
        db.UniqueConstraint('profile_id', 'mission_id', name='uq_mission_completions_profile_mission'),
    )

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    mission_id = db.Column(db.Integer, db.ForeignKey('missions.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ReviewStatus.PENDING.value)
    points_earned = db.Column(db.Integer, default=0, nullable=False)
    coins_earned = db.Column(db.Integer, default=0, nullable=False)
    proof_image_url = db.Column(db.String(500))
    proof_data = db.Column(db.JSON)
    admin_notes = db.Column(db.Text)
    completed_at = db.Column(db.DateTime)
    reviewed_at = db.Column(db.DateTime)
    reviewed_by = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def is_completed(self) -> bool:
        return self.status == ReviewStatus.APPROVED.value

    def __repr__(self):
        return f'<MissionCompletion profile={self.profile_id} mission={self.mission_id} {self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'profile_id': self.profile_id,
            'mission_id': self.mission_id,
            'status': self.status,
            'is_completed': self.is_completed,
            'points_earned': self.points_earned,
            'coins_earned': self.coins_earned,
            'proof_image_url': self.proof_image_url,
            'admin_notes': self.admin_notes,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
        }


class DailyCheckin(db.Model):
    __tablename__ = 'daily_checkins'
    __table_args__ = (
        db.UniqueConstraint('profile_id', 'checkin_date', name='uq_daily_checkins_profile_date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    checkin_date = db.Column(db.Date, nullable=False)
    streak_count = db.Column(db.Integer, nullable=False, default=1)
    day_number = db.Column(db.Integer, nullable=False, default=1)
    coins_earned = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # A check-in row only exists once completed
    is_completed = True

    def __repr__(self):
        return f'<DailyCheckin profile={self.profile_id} {self.checkin_date} streak={self.streak_count}>'

    def to_dict(self):
        return {
            'id': self.id,
            'profile_id': self.profile_id,
            'checkin_date': self.checkin_date.isoformat() if self.checkin_date else None,
            'streak_count': self.streak_count,
            'day_number': self.day_number,
            'coins_earned': self.coins_earned,
        }


class CheckinReward(db.Model):
    """Coins paid for each day of the check-in cycle."""
    __tablename__ = 'checkin_rewards'

    id = db.Column(db.Integer, primary_key=True)
    day_number = db.Column(db.Integer, nullable=False, unique=True)
    coins_reward = db.Column(db.Integer, nullable=False)
    is_bonus = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            'day_number': self.day_number,
            'coins_reward': self.coins_reward,
            'is_bonus': self.is_bonus,
        }


class Receipt(db.Model):
    """Purchase receipt uploaded by a member for points review."""
    __tablename__ = 'receipts'

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    image_url = db.Column(db.String(500), nullable=False)
    amount = db.Column(db.Numeric(12, 2))
    store_name = db.Column(db.String(200))
    status = db.Column(db.String(20), nullable=False, default=ReviewStatus.PENDING.value)
    points_awarded = db.Column(db.Integer, default=0, nullable=False)
    admin_notes = db.Column(db.Text)
    reviewed_at = db.Column(db.DateTime)
    reviewed_by = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Receipt {self.id} profile={self.profile_id} {self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'profile_id': self.profile_id,
            'image_url': self.image_url,
            'amount': float(self.amount) if self.amount is not None else None,
            'store_name': self.store_name,
            'status': self.status,
            'points_awarded': self.points_awarded,
            'admin_notes': self.admin_notes,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
