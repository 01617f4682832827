"""
Member profile, occupation details and tier settings.

`total_points` and `total_coins` are denormalized sums of the points and
coins ledgers. Only the ledger service writes them.
"""
from datetime import datetime
from enum import Enum
from ..extensions import db


# ==================== Enums ====================

class Tier(str, Enum):
    """Membership tier, lowest first."""
    BRONZE = 'bronze'
    SILVER = 'silver'
    GOLD = 'gold'
    PLATINUM = 'platinum'


class MemberType(str, Enum):
    FARM = 'farm'
    COMPANY_EMPLOYEE = 'company_employee'
    VETERINARIAN = 'veterinarian'
    LIVESTOCK_SHOP = 'livestock_shop'
    GOVERNMENT = 'government'
    OTHER = 'other'


class ApprovalStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class FarmPosition(str, Enum):
    OWNER = 'owner'
    FARM_MANAGER = 'farm_manager'
    ANIMAL_HUSBANDRY = 'animal_husbandry'
    ADMIN = 'admin'
    OTHER = 'other'


class CompanyBusiness(str, Enum):
    ANIMAL_PRODUCTION = 'animal_production'
    ANIMAL_FEED = 'animal_feed'
    VETERINARY_DISTRIBUTION = 'veterinary_distribution'
    OTHER = 'other'


class VetType(str, Enum):
    LIVESTOCK = 'livestock'
    HOSPITAL_CLINIC = 'hospital_clinic'


# Sub-type reported for employees of the program sponsor
SPONSOR_SUB_TYPE = 'elanco'


# ==================== Models ====================

class Profile(db.Model):
    """
    A registered portal member.
    """
    __tablename__ = 'profiles'
    __table_args__ = (
        db.CheckConstraint('total_points >= 0', name='ck_profiles_points_non_negative'),
        db.CheckConstraint('total_coins >= 0', name='ck_profiles_coins_non_negative'),
    )

    id = db.Column(db.Integer, primary_key=True)
    member_code = db.Column(db.String(20), unique=True)  # M000123

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(30))

    member_type = db.Column(db.String(30), nullable=False, default=MemberType.OTHER.value)
    tier = db.Column(db.String(20), nullable=False, default=Tier.BRONZE.value)
    approval_status = db.Column(db.String(20), nullable=False, default=ApprovalStatus.PENDING.value)

    # Balances (ledger service only)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    total_coins = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Occupation details (at most one applies, matching member_type)
    farm_detail = db.relationship('FarmDetail', uselist=False, back_populates='profile',
                                  cascade='all, delete-orphan')
    company_detail = db.relationship('CompanyDetail', uselist=False, back_populates='profile',
                                     cascade='all, delete-orphan')
    vet_detail = db.relationship('VetDetail', uselist=False, back_populates='profile',
                                 cascade='all, delete-orphan')

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()

    @property
    def sub_type(self):
        """Finer-grained role derived from the occupation detail, or None."""
        if self.member_type == MemberType.FARM.value:
            return self.farm_detail.position if self.farm_detail else None
        if self.member_type == MemberType.COMPANY_EMPLOYEE.value:
            if not self.company_detail:
                return None
            if self.company_detail.is_elanco:
                return SPONSOR_SUB_TYPE
            return self.company_detail.business_type
        if self.member_type == MemberType.VETERINARIAN.value:
            return self.vet_detail.vet_type if self.vet_detail else None
        return None

    def __repr__(self):
        return f'<Profile {self.id} {self.member_type}/{self.tier}>'

    def to_dict(self):
        return {
            'id': self.id,
            'member_code': self.member_code,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'phone': self.phone,
            'member_type': self.member_type,
            'member_sub_type': self.sub_type,
            'tier': self.tier,
            'approval_status': self.approval_status,
            'total_points': self.total_points,
            'total_coins': self.total_coins,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class FarmDetail(db.Model):
    __tablename__ = 'farm_details'

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id', ondelete='CASCADE'),
                           nullable=False, unique=True)
    farm_name = db.Column(db.String(200))
    position = db.Column(db.String(30))  # FarmPosition
    animal_types = db.Column(db.JSON, default=list)

    profile = db.relationship('Profile', back_populates='farm_detail')


class CompanyDetail(db.Model):
    __tablename__ = 'company_details'

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id', ondelete='CASCADE'),
                           nullable=False, unique=True)
    company_name = db.Column(db.String(200))
    business_type = db.Column(db.String(40))  # CompanyBusiness
    is_elanco = db.Column(db.Boolean, default=False, nullable=False)

    profile = db.relationship('Profile', back_populates='company_detail')


class VetDetail(db.Model):
    __tablename__ = 'vet_details'

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey('profiles.id', ondelete='CASCADE'),
                           nullable=False, unique=True)
    clinic_name = db.Column(db.String(200))
    vet_type = db.Column(db.String(30))  # VetType

    profile = db.relationship('Profile', back_populates='vet_detail')


class TierSetting(db.Model):
    """
    Points threshold for one tier. Ranges are [min_points, max_points);
    a null max_points means unbounded and is only valid on the top tier.
    """
    __tablename__ = 'tier_settings'

    id = db.Column(db.Integer, primary_key=True)
    tier = db.Column(db.String(20), nullable=False, unique=True)
    display_name = db.Column(db.String(50), nullable=False)
    min_points = db.Column(db.Integer, nullable=False)
    max_points = db.Column(db.Integer)
    benefits = db.Column(db.JSON, default=list)

    def __repr__(self):
        return f'<TierSetting {self.tier} {self.min_points}-{self.max_points}>'

    def to_dict(self):
        return {
            'id': self.id,
            'tier': self.tier,
            'display_name': self.display_name,
            'min_points': self.min_points,
            'max_points': self.max_points,
            'benefits': self.benefits or [],
        }
