"""
Ledger primitives for points and coins.

Four operations of identical shape (add/deduct x points/coins). Each one,
in a single unit of work:
- moves the denormalized balance on the profile with one guarded UPDATE
  (deductions carry `balance >= amount` in the WHERE clause, so concurrent
  spenders can never push a balance below zero)
- appends an immutable ledger row
- for points, re-derives the member's tier

Callers composing a larger transaction (redemption, completion awards,
exchange) pass `commit=False` and commit once themselves.

The ledger is the source of truth: `reconcile` compares every balance
with the signed sum of its ledger and reports drift.
"""
from typing import Any, Dict, List, Optional
from flask import current_app
from sqlalchemy import case, func, update
from ..extensions import db
from ..models import (
    Profile,
    PointsTransaction,
    CoinsTransaction,
    TransactionType,
    TransactionSource,
)
from ..utils.exceptions import (
    MemberNotFoundError,
    InsufficientPointsError,
    InsufficientCoinsError,
    ValidationError,
)
from .settings_service import SettingsService
from .tier_service import TierService

POINTS = 'points'
COINS = 'coins'

_CURRENCIES = {
    POINTS: (Profile.total_points, PointsTransaction, InsufficientPointsError),
    COINS: (Profile.total_coins, CoinsTransaction, InsufficientCoinsError),
}


def _validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError('Amount must be a positive integer', field='amount')
    return amount


class LedgerService:
    """
    Only code path that writes `total_points` and `total_coins`.

    Usage:
        ledger = LedgerService()
        ledger.add_points(profile_id, 50, 'content', description='Read: Biosecurity 101')
        ledger.deduct_coins(profile_id, 100, 'exchange', commit=False)
    """

    def __init__(self, tier_service: TierService = None):
        self.tier_service = tier_service or TierService()

    # ==================== Core Ledger Operations ====================

    def add_points(self, profile_id: int, amount: int, source: str, description: str = None,
                   source_id=None, commit: bool = True) -> Dict[str, Any]:
        return self._apply(POINTS, TransactionType.EARN, profile_id, amount, source,
                           description, source_id, commit)

    def deduct_points(self, profile_id: int, amount: int, source: str, description: str = None,
                      source_id=None, commit: bool = True) -> Dict[str, Any]:
        return self._apply(POINTS, TransactionType.SPEND, profile_id, amount, source,
                           description, source_id, commit)

    def add_coins(self, profile_id: int, amount: int, source: str, description: str = None,
                  source_id=None, commit: bool = True) -> Dict[str, Any]:
        return self._apply(COINS, TransactionType.EARN, profile_id, amount, source,
                           description, source_id, commit)

    def deduct_coins(self, profile_id: int, amount: int, source: str, description: str = None,
                     source_id=None, commit: bool = True) -> Dict[str, Any]:
        return self._apply(COINS, TransactionType.SPEND, profile_id, amount, source,
                           description, source_id, commit)

    def _apply(
        self,
        currency: str,
        transaction_type: TransactionType,
        profile_id: int,
        amount: int,
        source: str,
        description: Optional[str],
        source_id,
        commit: bool
    ) -> Dict[str, Any]:
        amount = _validate_amount(amount)
        column, transaction_model, insufficient_error = _CURRENCIES[currency]
        source = getattr(source, 'value', source)

        stmt = update(Profile).where(Profile.id == profile_id)
        if transaction_type == TransactionType.SPEND:
            stmt = stmt.where(column >= amount).values({column: column - amount})
        else:
            stmt = stmt.values({column: column + amount})
        result = db.session.execute(stmt.execution_options(synchronize_session=False))

        if result.rowcount != 1:
            profile = db.session.get(Profile, profile_id, populate_existing=True)
            current = getattr(profile, column.key) if profile is not None else None
            db.session.rollback()
            if profile is None:
                raise MemberNotFoundError(profile_id)
            current_app.logger.warning(
                f"Deduct {currency} rejected: profile {profile_id} has {current}, needs {amount}"
            )
            raise insufficient_error(current, amount)

        profile = db.session.get(Profile, profile_id, populate_existing=True)
        transaction = transaction_model(
            profile_id=profile_id,
            amount=amount,
            transaction_type=transaction_type.value,
            source=source,
            source_id=str(source_id) if source_id is not None else None,
            description=description,
        )
        db.session.add(transaction)

        tier_change = None
        if currency == POINTS:
            tier_change = self.tier_service.recalculate_member(profile)

        db.session.flush()

        if commit:
            try:
                db.session.commit()
            except Exception as e:
                db.session.rollback()
                current_app.logger.error(f"Ledger commit failed for profile {profile_id}: {e}")
                raise

        new_balance = getattr(profile, column.key)
        sign = '+' if transaction_type == TransactionType.EARN else '-'
        current_app.logger.info(
            f"Ledger: profile {profile_id} {sign}{amount} {currency} from {source}. "
            f"New balance: {new_balance}"
        )

        return {
            'success': True,
            'transaction_id': transaction.id,
            'profile_id': profile_id,
            'currency': currency,
            'transaction_type': transaction_type.value,
            'amount': amount,
            'source': source,
            'new_balance': new_balance,
            'tier': profile.tier,
            'tier_change': tier_change,
        }

    # ==================== Exchange ====================

    def exchange_coins_to_points(self, profile_id: int, coins: int) -> Dict[str, Any]:
        """
        Convert coins to points at the current exchange rate.

        Only whole points are bought; leftover coins stay on the balance.
        Both legs commit together or not at all.
        """
        settings = SettingsService().get_exchange_settings()
        if not settings['is_active']:
            raise ValidationError('Coin exchange is currently disabled')

        coins = _validate_amount(coins)
        min_coins = settings['min_coins']
        if coins < min_coins:
            raise ValidationError(f'Minimum exchange is {min_coins} coins', field='amount')

        rate = settings['coins_per_point']
        points = coins // rate
        if points < 1:
            raise ValidationError(f'At least {rate} coins are needed for 1 point', field='amount')
        coins_spent = points * rate

        description = f'Exchanged {coins_spent} coins for {points} points'
        coins_result = self.deduct_coins(profile_id, coins_spent, TransactionSource.EXCHANGE,
                                         description=description, commit=False)
        points_result = self.add_points(profile_id, points, TransactionSource.EXCHANGE,
                                        description=description, commit=False)
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Coin exchange failed for profile {profile_id}: {e}")
            raise

        return {
            'success': True,
            'coins_spent': coins_spent,
            'points_received': points,
            'total_coins': coins_result['new_balance'],
            'total_points': points_result['new_balance'],
            'message': description,
        }

    # ==================== History & Audit ====================

    def get_history(self, profile_id: int, currency: str = POINTS, page: int = 1,
                    per_page: int = 50) -> Dict[str, Any]:
        transaction_model = _CURRENCIES[currency][1]
        pagination = transaction_model.query.filter_by(profile_id=profile_id).order_by(
            transaction_model.created_at.desc(), transaction_model.id.desc()
        ).paginate(page=page, per_page=per_page, error_out=False)

        return {
            'transactions': [t.to_dict() for t in pagination.items],
            'total': pagination.total,
            'page': page,
            'per_page': per_page,
            'pages': pagination.pages,
        }

    @staticmethod
    def ledger_sum(profile_id: int, currency: str = POINTS) -> int:
        """Signed sum of a member's ledger."""
        transaction_model = _CURRENCIES[currency][1]
        signed = case(
            (transaction_model.transaction_type == TransactionType.EARN.value, transaction_model.amount),
            else_=-transaction_model.amount,
        )
        total = db.session.query(func.coalesce(func.sum(signed), 0)).filter(
            transaction_model.profile_id == profile_id
        ).scalar()
        return int(total or 0)

    def reconcile(self, profile_ids: List[int] = None) -> List[Dict[str, Any]]:
        """
        Members whose stored balance differs from their ledger.

        Read-only: balances are never rewritten from here, drift needs a
        human to look at the ledger first.
        """
        query = Profile.query.order_by(Profile.id)
        if profile_ids:
            query = query.filter(Profile.id.in_(profile_ids))

        mismatches = []
        for profile in query.all():
            for currency in (POINTS, COINS):
                stored = getattr(profile, _CURRENCIES[currency][0].key)
                expected = self.ledger_sum(profile.id, currency)
                if stored != expected:
                    mismatches.append({
                        'profile_id': profile.id,
                        'currency': currency,
                        'stored_balance': stored,
                        'ledger_balance': expected,
                        'difference': stored - expected,
                    })
        if mismatches:
            current_app.logger.warning(f"Ledger reconcile found {len(mismatches)} mismatched balances")
        return mismatches
