"""
Targetable items: content, missions and rewards.

All three share the same targeting columns. An empty or null list means
"everyone"; `target_sub_types` maps a member type to the sub-types of that
type allowed to see the item.
"""
from datetime import datetime
from enum import Enum
from ..extensions import db


class ContentType(str, Enum):
    ARTICLE = 'article'
    VIDEO = 'video'
    QUIZ = 'quiz'
    SURVEY = 'survey'


class MissionType(str, Enum):
    QR = 'qr'
    LOCATION = 'location'
    MANUAL = 'manual'


class TargetableMixin:
    target_tiers = db.Column(db.JSON, default=list)
    target_member_types = db.Column(db.JSON, default=list)
    target_sub_types = db.Column(db.JSON, default=dict)  # {"farm": ["owner", "farm_manager"]}

    def targeting_dict(self):
        return {
            'target_tiers': self.target_tiers or [],
            'target_member_types': self.target_member_types or [],
            'target_sub_types': self.target_sub_types or {},
        }


class Content(TargetableMixin, db.Model):
    """Article, video, quiz or survey that awards points once per member."""
    __tablename__ = 'content'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    body = db.Column(db.Text)
    content_type = db.Column(db.String(20), nullable=False, default=ContentType.ARTICLE.value)
    points_reward = db.Column(db.Integer, nullable=False, default=0)
    media_url = db.Column(db.String(500))
    thumbnail_url = db.Column(db.String(500))
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    published_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    quiz_questions = db.relationship('QuizQuestion', backref='content', lazy='dynamic',
                                     order_by='QuizQuestion.order_index',
                                     cascade='all, delete-orphan')
    survey_questions = db.relationship('SurveyQuestion', backref='content', lazy='dynamic',
                                       order_by='SurveyQuestion.order_index',
                                       cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Content {self.id} {self.content_type}: {self.title}>'

    def to_dict(self, include_questions=False):
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'content_type': self.content_type,
            'points_reward': self.points_reward,
            'media_url': self.media_url,
            'thumbnail_url': self.thumbnail_url,
            'is_published': self.is_published,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            **self.targeting_dict(),
        }
        if include_questions:
            if self.content_type == ContentType.QUIZ.value:
                data['questions'] = [q.to_dict() for q in self.quiz_questions]
            elif self.content_type == ContentType.SURVEY.value:
                data['questions'] = [q.to_dict() for q in self.survey_questions]
        return data


class QuizQuestion(db.Model):
    __tablename__ = 'quiz_questions'

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey('content.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON, nullable=False, default=list)
    correct_answer = db.Column(db.Integer, nullable=False)  # index into options
    points = db.Column(db.Integer, nullable=False, default=0)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        # correct_answer stays server-side
        return {
            'id': self.id,
            'question': self.question,
            'options': self.options or [],
            'points': self.points,
            'order_index': self.order_index,
        }


class SurveyQuestion(db.Model):
    __tablename__ = 'survey_questions'

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey('content.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(30), nullable=False, default='text')  # text, single_choice, multiple_choice, rating
    options = db.Column(db.JSON, default=list)
    is_required = db.Column(db.Boolean, nullable=False, default=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'id': self.id,
            'question': self.question,
            'question_type': self.question_type,
            'options': self.options or [],
            'is_required': self.is_required,
            'order_index': self.order_index,
        }


class Mission(TargetableMixin, db.Model):
    """
    Special mission completed by QR scan, location check or manual proof.

    `reward_overrides` is an ordered list such as
    [{"type": "member_type", "value": "farm", "sub_type": "owner", "points": 200, "coins": 0},
     {"type": "tier", "value": "gold", "points": 150, "coins": 10}]
    """
    __tablename__ = 'missions'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    mission_type = db.Column(db.String(20), nullable=False, default=MissionType.MANUAL.value)
    points_reward = db.Column(db.Integer, nullable=False, default=0)
    coins_reward = db.Column(db.Integer, nullable=False, default=0)
    qr_code = db.Column(db.String(255))
    location = db.Column(db.String(255))
    reward_overrides = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    start_date = db.Column(db.DateTime)
    end_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_open(self, now: datetime = None) -> bool:
        """Active and inside its optional date window."""
        now = now or datetime.utcnow()
        if not self.is_active:
            return False
        if self.start_date and now < self.start_date:
            return False
        if self.end_date and now > self.end_date:
            return False
        return True

    def __repr__(self):
        return f'<Mission {self.id} {self.mission_type}: {self.title}>'

    def to_dict(self):
        # qr_code is the secret the member has to scan, never listed
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'mission_type': self.mission_type,
            'points_reward': self.points_reward,
            'coins_reward': self.coins_reward,
            'location': self.location,
            'is_active': self.is_active,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            **self.targeting_dict(),
        }


class Reward(TargetableMixin, db.Model):
    """
    Catalog item members redeem with points.

    `tier_points_cost` maps a tier to its own price; tiers without an entry
    pay the flat `points_cost`.
    """
    __tablename__ = 'rewards'
    __table_args__ = (
        db.CheckConstraint('stock_quantity >= 0', name='ck_rewards_stock_non_negative'),
        db.CheckConstraint('points_cost >= 0', name='ck_rewards_points_cost_non_negative'),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(50))
    image_url = db.Column(db.String(500))
    points_cost = db.Column(db.Integer, nullable=False)
    tier_points_cost = db.Column(db.JSON, default=dict)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Reward {self.id}: {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'image_url': self.image_url,
            'points_cost': self.points_cost,
            'tier_points_cost': self.tier_points_cost or {},
            'stock_quantity': self.stock_quantity,
            'in_stock': (self.stock_quantity or 0) > 0,
            'is_active': self.is_active,
            **self.targeting_dict(),
        }
