"""
Admin review of member submissions: purchase receipts and manual-proof
missions.

A submission leaves `pending` exactly once. The status flip is a guarded
UPDATE on `status = 'pending'`, so two admins approving the same receipt
at once award it a single time.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict
from flask import current_app
from sqlalchemy import update
from ..extensions import db
from ..models import Profile, Receipt, Mission, MissionCompletion, ReviewStatus, TransactionSource
from ..utils.exceptions import (
    MemberNotFoundError,
    ItemNotFoundError,
    StateConflictError,
    ValidationError,
)
from .completion_service import CompletionService
from .ledger_service import LedgerService


def _claim_pending(model, record_id: int, new_status: str, **values) -> bool:
    result = db.session.execute(
        update(model)
        .where(model.id == record_id, model.status == ReviewStatus.PENDING.value)
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


class ReviewService:
    """
    Usage:
        service = ReviewService()
        service.submit_receipt(member_id, 'https://cdn/receipt.jpg', amount='1250.00')
        service.review_receipt(receipt_id, approve=True, points=125, reviewer='admin@farm')
    """

    def __init__(self, ledger: LedgerService = None):
        self.ledger = ledger or LedgerService()

    # ==================== Receipts ====================

    def submit_receipt(self, member_id: int, image_url: str, amount=None, store_name: str = None) -> Receipt:
        if not image_url or not str(image_url).strip():
            raise ValidationError('image_url is required', field='image_url')
        if db.session.get(Profile, member_id) is None:
            raise MemberNotFoundError(member_id)

        parsed_amount = None
        if amount is not None and amount != '':
            try:
                parsed_amount = Decimal(str(amount))
            except InvalidOperation:
                raise ValidationError('amount must be a number', field='amount')
            if parsed_amount < 0:
                raise ValidationError('amount cannot be negative', field='amount')

        receipt = Receipt(
            profile_id=member_id,
            image_url=str(image_url).strip(),
            amount=parsed_amount,
            store_name=store_name,
            status=ReviewStatus.PENDING.value,
        )
        db.session.add(receipt)
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Receipt submit failed for profile {member_id}: {e}")
            raise

        current_app.logger.info(f"Receipt {receipt.id} submitted by profile {member_id}")
        return receipt

    def review_receipt(self, receipt_id: int, approve: bool, points: int = 0,
                       admin_notes: str = None, reviewer: str = None) -> Dict[str, Any]:
        """
        Approve (awarding `points`, source `receipt`) or reject a pending receipt.
        """
        receipt = db.session.get(Receipt, receipt_id)
        if receipt is None:
            raise ItemNotFoundError('Receipt', receipt_id)

        max_points = current_app.config['MAX_RECEIPT_POINTS']
        if approve:
            if isinstance(points, bool) or not isinstance(points, int) or not 0 <= points <= max_points:
                raise ValidationError(f'points must be an integer between 0 and {max_points}', field='points')
        else:
            points = 0

        new_status = ReviewStatus.APPROVED.value if approve else ReviewStatus.REJECTED.value
        try:
            claimed = _claim_pending(
                Receipt, receipt_id, new_status,
                points_awarded=points,
                admin_notes=admin_notes,
                reviewed_at=datetime.utcnow(),
                reviewed_by=reviewer,
            )
            if not claimed:
                db.session.rollback()
                db.session.refresh(receipt)
                raise StateConflictError('receipt', receipt.status, new_status)

            if points > 0:
                self.ledger.add_points(receipt.profile_id, points, TransactionSource.RECEIPT,
                                       description=f'Receipt #{receipt_id} approved',
                                       source_id=receipt_id, commit=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        db.session.refresh(receipt)
        current_app.logger.info(f"Receipt {receipt_id} {new_status} by {reviewer or 'admin'} (+{points} pts)")
        return {'success': True, 'receipt': receipt, 'points_awarded': points}

    # ==================== Manual Missions ====================

    def review_mission_completion(self, completion_id: int, approve: bool,
                                  admin_notes: str = None, reviewer: str = None) -> Dict[str, Any]:
        """
        Approve (paying the award captured at submission) or reject a pending
        manual mission.
        """
        completion = db.session.get(MissionCompletion, completion_id)
        if completion is None:
            raise ItemNotFoundError('Mission completion', completion_id)
        mission = db.session.get(Mission, completion.mission_id)

        now = datetime.utcnow()
        new_status = ReviewStatus.APPROVED.value if approve else ReviewStatus.REJECTED.value
        values = {'admin_notes': admin_notes, 'reviewed_at': now, 'reviewed_by': reviewer}
        if approve:
            values['completed_at'] = now

        try:
            if not _claim_pending(MissionCompletion, completion_id, new_status, **values):
                db.session.rollback()
                db.session.refresh(completion)
                raise StateConflictError('mission completion', completion.status, new_status)

            db.session.refresh(completion)
            if approve:
                CompletionService(self.ledger).pay_mission(completion, mission)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"Mission completion {completion_id} {new_status} by {reviewer or 'admin'}")
        return {
            'success': True,
            'completion': completion,
            'points_awarded': completion.points_earned if approve else 0,
            'coins_awarded': completion.coins_earned if approve else 0,
        }
