"""
Shared fixtures for the loyalty test suite.

Each test gets a fresh in-memory database and runs inside a single pushed
application context, so model instances created by fixtures stay bound to
the same session the services use.
"""
import pytest

from loyalty import create_app
from loyalty.extensions import db
from loyalty.models import (
    Profile,
    FarmDetail,
    CompanyDetail,
    VetDetail,
    Reward,
    TierSetting,
    MemberType,
    ApprovalStatus,
    TransactionSource,
)
from loyalty.services.ledger_service import LedgerService

ADMIN_TOKEN = 'test-admin-token'


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app('testing')
    ctx = app.app_context()
    ctx.push()
    db.create_all()

    yield app

    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_member(app):
    """
    Factory for approved members.

    Starting balances are written through the ledger so stored balances and
    ledger sums agree from the start.
    """
    counter = {'n': 0}

    def _make(member_type=MemberType.FARM.value, sub_type='owner', points=0, coins=0,
              approval_status=ApprovalStatus.APPROVED.value, is_elanco=False, **fields):
        counter['n'] += 1
        profile = Profile(
            member_code=f'MTEST{counter["n"]:03d}',
            first_name=fields.pop('first_name', 'Test'),
            last_name=fields.pop('last_name', f'Member{counter["n"]}'),
            email=fields.pop('email', f'member{counter["n"]}@example.com'),
            member_type=member_type,
            approval_status=approval_status,
            total_points=0,
            total_coins=0,
            **fields,
        )
        if member_type == MemberType.FARM.value:
            profile.farm_detail = FarmDetail(farm_name='Test Farm', position=sub_type)
        elif member_type == MemberType.COMPANY_EMPLOYEE.value:
            profile.company_detail = CompanyDetail(company_name='Test Co', business_type=sub_type,
                                                   is_elanco=is_elanco)
        elif member_type == MemberType.VETERINARIAN.value:
            profile.vet_detail = VetDetail(clinic_name='Test Clinic', vet_type=sub_type)
        db.session.add(profile)
        db.session.commit()

        ledger = LedgerService()
        if points:
            ledger.add_points(profile.id, points, TransactionSource.ADMIN, description='Opening balance')
        if coins:
            ledger.add_coins(profile.id, coins, TransactionSource.ADMIN, description='Opening balance')
        return db.session.get(Profile, profile.id)

    return _make


@pytest.fixture
def sample_member(make_member):
    """Approved farm owner with 1000 points and 200 coins."""
    return make_member(points=1000, coins=200)


@pytest.fixture
def make_reward(app):
    """Factory for active rewards."""
    def _make(points_cost=100, stock_quantity=10, **fields):
        reward = Reward(
            name=fields.pop('name', 'Test Reward'),
            points_cost=points_cost,
            stock_quantity=stock_quantity,
            is_active=fields.pop('is_active', True),
            **fields,
        )
        db.session.add(reward)
        db.session.commit()
        return reward

    return _make


@pytest.fixture
def sample_reward(make_reward):
    """100-point reward with 10 units in stock."""
    return make_reward(name='Feed Scoop', points_cost=100, stock_quantity=10)


@pytest.fixture
def small_tiers(app):
    """bronze [0,100), silver [100,500), gold [500,)"""
    for tier, lo, hi in (('bronze', 0, 100), ('silver', 100, 500), ('gold', 500, None)):
        db.session.add(TierSetting(tier=tier, display_name=tier.title(), min_points=lo, max_points=hi))
    db.session.commit()


@pytest.fixture
def admin_headers():
    return {'X-Admin-Token': ADMIN_TOKEN, 'X-Admin-User': 'reviewer@example.com'}


@pytest.fixture
def member_headers():
    """Identity headers the gateway forwards for a member."""
    def _headers(profile):
        return {'X-Profile-Id': str(profile.id)}
    return _headers
