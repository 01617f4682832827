"""
Member API endpoints.

Handles:
- Registration with auto-approval
- Own profile and balances
- Points / coins history
- Coin to point exchange
"""
from flask import Blueprint, g, jsonify, request
from ..middleware import require_member
from ..services.ledger_service import LedgerService, POINTS, COINS
from ..services.membership_service import MembershipService
from ..services.settings_service import SettingsService
from ..utils.errors import ErrorCode, bad_request

members_bp = Blueprint('members', __name__)


@members_bp.route('/register', methods=['POST'])
def register():
    """
    Register a member.

    JSON body:
        first_name, last_name, member_type (required)
        position (farm), business_type + is_elanco (company_employee),
        vet_type (veterinarian)
        email, phone, farm_name, company_name, clinic_name (optional)

    Returns:
        Created profile, including approval_status
    """
    data = request.get_json(silent=True) or {}
    profile = MembershipService().register(data)
    return jsonify({'success': True, 'profile': profile.to_dict()}), 201


@members_bp.route('/me', methods=['GET'])
@require_member
def get_me():
    """Own profile with balances and derived sub-type."""
    return jsonify({'profile': g.profile.to_dict()})


def _history(currency):
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 50, type=int), 100)
    return jsonify(LedgerService().get_history(g.profile_id, currency, page=page, per_page=per_page))


@members_bp.route('/me/points', methods=['GET'])
@require_member
def points_history():
    """
    Points ledger, newest first.

    Query params:
        page: Page number (default 1)
        per_page: Items per page (default 50, max 100)
    """
    return _history(POINTS)


@members_bp.route('/me/coins', methods=['GET'])
@require_member
def coins_history():
    """Coins ledger, newest first."""
    return _history(COINS)


@members_bp.route('/me/exchange', methods=['GET'])
@require_member
def exchange_settings():
    """Current exchange switch, rate and minimum."""
    return jsonify(SettingsService().get_exchange_settings())


@members_bp.route('/me/exchange', methods=['POST'])
@require_member
def exchange_coins():
    """
    Exchange coins for points.

    JSON body:
        amount: Coins to exchange (integer)
    """
    data = request.get_json(silent=True) or {}
    amount = data.get('amount')
    if not isinstance(amount, int) or isinstance(amount, bool):
        return bad_request('amount must be an integer', ErrorCode.INVALID_FIELD)

    result = LedgerService().exchange_coins_to_points(g.profile_id, amount)
    return jsonify(result)
