"""
Rewards API endpoints.

Handles:
- Reward catalog filtered to what the member may redeem, at their price
- Reward redemption
- Member's redemption history
"""
from flask import Blueprint, g, jsonify, request
from ..extensions import db
from ..models import Reward
from ..middleware import require_member
from ..services.eligibility import MemberSnapshot, filter_eligible, is_eligible
from ..services.pricing import effective_price
from ..services.redemption_service import RedemptionService
from ..utils.errors import ErrorCode, bad_request, not_found

rewards_bp = Blueprint('rewards', __name__)


def _reward_view(reward, member):
    price = effective_price(reward, member.tier)
    return {
        **reward.to_dict(),
        'effective_price': price,
        'can_afford': g.profile.total_points >= price,
    }


@rewards_bp.route('', methods=['GET'])
@require_member
def list_rewards():
    """
    Active rewards the member is eligible for.

    Query params:
        category: Filter by category

    Each reward carries `effective_price` for the member's tier; the same
    snapshot is used for every row.
    """
    member = MemberSnapshot.from_profile(g.profile)
    query = Reward.query.filter(Reward.is_active == True)  # noqa: E712

    category = request.args.get('category')
    if category:
        query = query.filter(Reward.category == category)

    rewards = filter_eligible(member, query.order_by(Reward.points_cost.asc(), Reward.id.asc()).all())
    return jsonify({
        'rewards': [_reward_view(r, member) for r in rewards],
        'count': len(rewards),
        'tier': member.tier,
    })


@rewards_bp.route('/<int:reward_id>', methods=['GET'])
@require_member
def get_reward(reward_id):
    member = MemberSnapshot.from_profile(g.profile)
    reward = db.session.get(Reward, reward_id)
    if not reward or not reward.is_active or not is_eligible(member, reward):
        return not_found('Reward not found', ErrorCode.REWARD_NOT_FOUND)
    return jsonify({'reward': _reward_view(reward, member)})


@rewards_bp.route('/<int:reward_id>/redeem', methods=['POST'])
@require_member
def redeem_reward(reward_id):
    """
    Redeem a reward.

    JSON body:
        shipping_address: Delivery address (required)
        notes: Optional note
        expected_price: Price shown to the member; stale prices are rejected

    Returns:
        Created redemption (status pending) and the new points balance
    """
    data = request.get_json(silent=True) or {}

    expected_price = data.get('expected_price')
    if expected_price is not None:
        try:
            expected_price = int(expected_price)
        except (TypeError, ValueError):
            return bad_request('expected_price must be an integer', ErrorCode.INVALID_FIELD)

    redemption = RedemptionService().redeem(
        member_id=g.profile_id,
        reward_id=reward_id,
        shipping_address=data.get('shipping_address'),
        notes=data.get('notes'),
        expected_price=expected_price,
        acting_member_id=g.profile_id,
    )

    return jsonify({
        'success': True,
        'redemption': redemption.to_dict(),
        'new_balance': redemption.profile.total_points,
    }), 201


@rewards_bp.route('/redemptions', methods=['GET'])
@require_member
def list_redemptions():
    """
    Member's redemptions, newest first.

    Query params:
        page: Page number (default 1)
        per_page: Items per page (default 20, max 100)
    """
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 20, type=int), 100)
    return jsonify(RedemptionService().list_for_member(g.profile_id, page=page, per_page=per_page))
