"""
Member registration and auto-approval.

Registration creates the profile plus the occupation detail its sub-type
is derived from. The approval decision is made from the occupation alone:
the program is open to livestock-related members only.
"""
import secrets
from typing import Any, Dict, Optional
from flask import current_app
from ..extensions import db
from ..models import (
    Profile,
    FarmDetail,
    CompanyDetail,
    VetDetail,
    MemberType,
    ApprovalStatus,
    FarmPosition,
    CompanyBusiness,
    VetType,
)
from ..utils.exceptions import ValidationError
from .tier_service import TierService

# Company business types approved regardless of employer
APPROVED_COMPANY_BUSINESS = {
    CompanyBusiness.ANIMAL_PRODUCTION.value,
    CompanyBusiness.ANIMAL_FEED.value,
    CompanyBusiness.OTHER.value,
}


def determine_approval_status(member_type: str, business_type: str = None,
                              is_elanco: bool = False, vet_type: str = None) -> str:
    """
    approved: farms, livestock shops, livestock vets, company employees in
    production/feed/other, sponsor employees in veterinary distribution.
    rejected: everyone else.
    """
    if member_type in (MemberType.FARM.value, MemberType.LIVESTOCK_SHOP.value):
        return ApprovalStatus.APPROVED.value
    if member_type == MemberType.VETERINARIAN.value and vet_type == VetType.LIVESTOCK.value:
        return ApprovalStatus.APPROVED.value
    if member_type == MemberType.COMPANY_EMPLOYEE.value:
        if business_type in APPROVED_COMPANY_BUSINESS:
            return ApprovalStatus.APPROVED.value
        if business_type == CompanyBusiness.VETERINARY_DISTRIBUTION.value and is_elanco:
            return ApprovalStatus.APPROVED.value
    return ApprovalStatus.REJECTED.value


def _choice(data: Dict, key: str, enum_cls, required: bool = False) -> Optional[str]:
    value = data.get(key)
    if value in (None, ''):
        if required:
            raise ValidationError(f'{key} is required', field=key)
        return None
    valid = [e.value for e in enum_cls]
    if value not in valid:
        raise ValidationError(f'{key} must be one of: {valid}', field=key)
    return value


class MembershipService:

    def __init__(self, tier_service: TierService = None):
        self.tier_service = tier_service or TierService()

    def register(self, data: Dict[str, Any]) -> Profile:
        """
        Create a member from registration data.

        Required: first_name, last_name, member_type, plus
        position (farm), business_type (company_employee) or
        vet_type (veterinarian).
        """
        for field in ('first_name', 'last_name'):
            if not (data.get(field) or '').strip():
                raise ValidationError(f'{field} is required', field=field)
        member_type = _choice(data, 'member_type', MemberType, required=True)

        profile = Profile(
            first_name=data['first_name'].strip(),
            last_name=data['last_name'].strip(),
            email=data.get('email'),
            phone=data.get('phone'),
            member_type=member_type,
            tier=self.tier_service.tier_for(0),
            total_points=0,
            total_coins=0,
        )

        business_type = vet_type = None
        is_elanco = bool(data.get('is_elanco'))
        if member_type == MemberType.FARM.value:
            profile.farm_detail = FarmDetail(
                farm_name=data.get('farm_name'),
                position=_choice(data, 'position', FarmPosition, required=True),
                animal_types=data.get('animal_types') or [],
            )
        elif member_type == MemberType.COMPANY_EMPLOYEE.value:
            business_type = _choice(data, 'business_type', CompanyBusiness, required=True)
            profile.company_detail = CompanyDetail(
                company_name=data.get('company_name'),
                business_type=business_type,
                is_elanco=is_elanco,
            )
        elif member_type == MemberType.VETERINARIAN.value:
            vet_type = _choice(data, 'vet_type', VetType, required=True)
            profile.vet_detail = VetDetail(clinic_name=data.get('clinic_name'), vet_type=vet_type)

        profile.approval_status = determine_approval_status(member_type, business_type, is_elanco, vet_type)
        profile.member_code = self.generate_member_code()

        db.session.add(profile)
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Member registration failed: {e}")
            raise

        current_app.logger.info(
            f"Member registered: {profile.member_code} ({member_type}) -> {profile.approval_status}"
        )
        return profile

    @staticmethod
    def generate_member_code() -> str:
        return f'M{secrets.token_hex(4).upper()}'
