"""
Tests for admin review of receipts and manual missions.
"""
import pytest
from decimal import Decimal

from loyalty.extensions import db
from loyalty.models import Profile, Mission, MissionCompletion, Receipt, PointsTransaction
from loyalty.services.completion_service import CompletionService
from loyalty.services.review_service import ReviewService
from loyalty.utils.exceptions import (
    ItemNotFoundError,
    MemberNotFoundError,
    StateConflictError,
    ValidationError,
)


class TestSubmitReceipt:

    def test_submit(self, make_member):
        profile = make_member()
        receipt = ReviewService().submit_receipt(profile.id, 'https://cdn.example.com/r1.jpg',
                                                 amount='1250.50', store_name='Agro Supply')
        assert receipt.status == 'pending'
        assert receipt.amount == Decimal('1250.50')
        assert receipt.points_awarded == 0

    def test_image_required(self, make_member):
        with pytest.raises(ValidationError):
            ReviewService().submit_receipt(make_member().id, '  ')

    def test_bad_amount(self, make_member):
        with pytest.raises(ValidationError):
            ReviewService().submit_receipt(make_member().id, 'https://cdn.example.com/r1.jpg', amount='abc')
        with pytest.raises(ValidationError):
            ReviewService().submit_receipt(make_member().id, 'https://cdn.example.com/r1.jpg', amount='-1')

    def test_unknown_member(self, app):
        with pytest.raises(MemberNotFoundError):
            ReviewService().submit_receipt(99999, 'https://cdn.example.com/r1.jpg')


class TestReviewReceipt:

    @pytest.fixture
    def receipt(self, make_member):
        profile = make_member()
        return ReviewService().submit_receipt(profile.id, 'https://cdn.example.com/r1.jpg', amount='500')

    def test_approve_awards_points(self, receipt):
        result = ReviewService().review_receipt(receipt.id, approve=True, points=125, reviewer='ops')

        assert result['points_awarded'] == 125
        assert result['receipt'].status == 'approved'
        assert result['receipt'].reviewed_by == 'ops'
        assert db.session.get(Profile, receipt.profile_id).total_points == 125

        tx = PointsTransaction.query.filter_by(profile_id=receipt.profile_id).one()
        assert tx.source == 'receipt'
        assert tx.source_id == str(receipt.id)

    def test_reject_awards_nothing(self, receipt):
        result = ReviewService().review_receipt(receipt.id, approve=False, points=500,
                                                admin_notes='Unreadable')
        assert result['points_awarded'] == 0
        assert result['receipt'].status == 'rejected'
        assert result['receipt'].admin_notes == 'Unreadable'
        assert PointsTransaction.query.count() == 0

    def test_second_review_conflicts(self, receipt):
        service = ReviewService()
        service.review_receipt(receipt.id, approve=True, points=10)
        with pytest.raises(StateConflictError):
            service.review_receipt(receipt.id, approve=True, points=10)
        assert db.session.get(Profile, receipt.profile_id).total_points == 10

    @pytest.mark.parametrize('points', [-1, 100001, 1.5, '10'])
    def test_points_out_of_range(self, receipt, points):
        with pytest.raises(ValidationError):
            ReviewService().review_receipt(receipt.id, approve=True, points=points)
        assert db.session.get(Receipt, receipt.id).status == 'pending'

    def test_unknown_receipt(self, app):
        with pytest.raises(ItemNotFoundError):
            ReviewService().review_receipt(99999, approve=True, points=1)


class TestReviewMissionCompletion:

    @pytest.fixture
    def pending(self, make_member):
        mission = Mission(title='Photo of your herd', mission_type='manual', points_reward=40, coins_reward=4)
        db.session.add(mission)
        db.session.commit()
        profile = make_member()
        result = CompletionService().complete_mission(
            profile.id, mission.id, {'proof_image_url': 'https://cdn.example.com/herd.jpg'}
        )
        return result['record']

    def test_approve_pays_once(self, pending):
        service = ReviewService()
        result = service.review_mission_completion(pending.id, approve=True, reviewer='ops')

        assert result['points_awarded'] == 40
        assert result['coins_awarded'] == 4
        assert result['completion'].status == 'approved'
        assert result['completion'].completed_at is not None
        profile = db.session.get(Profile, pending.profile_id)
        assert (profile.total_points, profile.total_coins) == (40, 4)

        with pytest.raises(StateConflictError):
            service.review_mission_completion(pending.id, approve=True)
        assert db.session.get(Profile, pending.profile_id).total_points == 40

    def test_reject_then_resubmit(self, pending):
        ReviewService().review_mission_completion(pending.id, approve=False, admin_notes='Blurry')
        assert db.session.get(MissionCompletion, pending.id).status == 'rejected'
        assert PointsTransaction.query.count() == 0

        again = CompletionService().complete_mission(
            pending.profile_id, pending.mission_id, {'proof_image_url': 'https://cdn.example.com/herd2.jpg'}
        )
        assert again['already_completed'] is False
        assert again['status'] == 'pending'
        assert MissionCompletion.query.count() == 1

    def test_pending_submission_is_not_resubmitted(self, pending):
        again = CompletionService().complete_mission(
            pending.profile_id, pending.mission_id, {'proof_image_url': 'https://cdn.example.com/other.jpg'}
        )
        assert again['already_completed'] is False
        assert again['status'] == 'pending'
        assert again['record'].id == pending.id
        assert PointsTransaction.query.count() == 0

    def test_unknown_completion(self, app):
        with pytest.raises(ItemNotFoundError):
            ReviewService().review_mission_completion(99999, approve=True)
