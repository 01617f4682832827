"""
Reward redemption.

`redeem` is one unit of work: every precondition is re-derived from the
database (never from what the client displayed), stock and points are
moved with guarded UPDATEs, and the redemption row is inserted before a
single commit. Any failure rolls the whole unit back.

Status changes after creation are administrative and never touch the
ledger.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from flask import current_app
from sqlalchemy import update
from ..extensions import db
from ..models import Profile, Reward, RewardRedemption, RedemptionStatus, TransactionSource
from ..utils.exceptions import (
    UnauthorizedError,
    RewardNotFoundError,
    RewardNotActiveError,
    IneligibleError,
    PriceMismatchError,
    InsufficientPointsError,
    OutOfStockError,
    ValidationError,
    ItemNotFoundError,
    StateConflictError,
)
from .concurrency import lock_for_update, run_with_retry
from .eligibility import MemberSnapshot, is_eligible
from .ledger_service import LedgerService
from .pricing import effective_price


class RedemptionService:
    """
    Usage:
        service = RedemptionService()
        redemption = service.redeem(member_id, reward_id, '12 Farm Rd', acting_member_id=member_id)
    """

    def __init__(self, ledger: LedgerService = None):
        self.ledger = ledger or LedgerService()

    # ==================== Redeem ====================

    def redeem(
        self,
        member_id: int,
        reward_id: int,
        shipping_address: str,
        notes: str = None,
        expected_price: Optional[int] = None,
        *,
        acting_member_id: int
    ) -> RewardRedemption:
        """
        Redeem one unit of a reward for a member.

        Args:
            member_id: Member paying for the reward
            reward_id: Reward to redeem
            shipping_address: Where to ship it (required)
            notes: Optional note from the member
            expected_price: Price the client showed; rejected if stale
            acting_member_id: Authenticated caller; required, must be the member

        Returns:
            The created RewardRedemption (status pending)

        Raises:
            RewardNotFoundError, UnauthorizedError, RewardNotActiveError,
            IneligibleError, PriceMismatchError, InsufficientPointsError,
            OutOfStockError, ValidationError
        """
        if not shipping_address or not str(shipping_address).strip():
            raise ValidationError('Shipping address is required', field='shipping_address')

        return run_with_retry(lambda: self._redeem(
            member_id, reward_id, str(shipping_address).strip(), notes, expected_price, acting_member_id
        ))

    def _redeem(self, member_id, reward_id, shipping_address, notes, expected_price, acting_member_id):
        try:
            reward = lock_for_update(Reward.query.filter_by(id=reward_id)).populate_existing().first()
            if reward is None:
                raise RewardNotFoundError(reward_id)

            profile = lock_for_update(Profile.query.filter_by(id=member_id)).populate_existing().first()
            if profile is None or acting_member_id is None or acting_member_id != member_id:
                raise UnauthorizedError()

            if not reward.is_active:
                raise RewardNotActiveError(reward_id)

            member = MemberSnapshot.from_profile(profile)
            if not is_eligible(member, reward):
                raise IneligibleError('Reward', reward_id)

            price = effective_price(reward, member.tier)
            if expected_price is not None and int(expected_price) != price:
                raise PriceMismatchError(int(expected_price), price)

            if profile.total_points < price:
                raise InsufficientPointsError(profile.total_points, price)

            if reward.stock_quantity <= 0:
                raise OutOfStockError(reward_id)

            # Guarded decrement: a concurrent redeemer may have taken the last unit
            result = db.session.execute(
                update(Reward)
                .where(Reward.id == reward_id, Reward.stock_quantity > 0)
                .values(stock_quantity=Reward.stock_quantity - 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise OutOfStockError(reward_id)

            redemption = RewardRedemption(
                profile_id=member_id,
                reward_id=reward_id,
                redemption_code=RewardRedemption.generate_redemption_code(),
                points_spent=price,
                status=RedemptionStatus.PENDING.value,
                shipping_address=shipping_address,
                notes=notes,
            )
            db.session.add(redemption)
            db.session.flush()

            if price > 0:
                self.ledger.deduct_points(
                    member_id,
                    price,
                    TransactionSource.REWARD,
                    description=f'Redeemed: {reward.name}',
                    source_id=redemption.id,
                    commit=False,
                )

            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f"Reward redeemed: profile {member_id} reward {reward_id} for {price} pts "
            f"({redemption.redemption_code})"
        )
        return redemption

    # ==================== Admin Workflow ====================

    def update_status(self, redemption_id: int, status: str, tracking_number: str = None,
                      notes: str = None) -> RewardRedemption:
        """
        Move a redemption along pending -> processing -> shipped -> completed,
        or cancel it. Balances and stock are left alone.
        """
        valid = {s.value for s in RedemptionStatus}
        if status not in valid:
            raise ValidationError(f'status must be one of: {sorted(valid)}', field='status')

        redemption = db.session.get(RewardRedemption, redemption_id)
        if redemption is None:
            raise ItemNotFoundError('Redemption', redemption_id)

        if not redemption.can_transition_to(status):
            raise StateConflictError('redemption', redemption.status, status)

        now = datetime.utcnow()
        old_status = redemption.status
        redemption.status = status
        if tracking_number:
            redemption.tracking_number = tracking_number
        if notes:
            redemption.notes = notes
        if status == RedemptionStatus.SHIPPED.value:
            redemption.shipped_at = now
        elif status == RedemptionStatus.COMPLETED.value:
            redemption.completed_at = now
        elif status == RedemptionStatus.CANCELLED.value:
            redemption.cancelled_at = now

        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Redemption {redemption_id} status update failed: {e}")
            raise

        current_app.logger.info(f"Redemption {redemption.redemption_code}: {old_status} -> {status}")
        return redemption

    def list_for_member(self, member_id: int, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        pagination = RewardRedemption.query.filter_by(profile_id=member_id).order_by(
            RewardRedemption.created_at.desc(), RewardRedemption.id.desc()
        ).paginate(page=page, per_page=per_page, error_out=False)

        return {
            'redemptions': [r.to_dict() for r in pagination.items],
            'total': pagination.total,
            'page': page,
            'per_page': per_page,
            'pages': pagination.pages,
        }
