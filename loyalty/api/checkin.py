"""
Daily check-in API endpoints.
"""
from flask import Blueprint, g, jsonify
from ..middleware import require_member
from ..services.completion_service import CompletionService

checkin_bp = Blueprint('checkin', __name__)


@checkin_bp.route('', methods=['GET'])
@require_member
def checkin_status():
    """Whether the member checked in today, current streak and the 7-day schedule."""
    return jsonify(CompletionService().checkin_status(g.profile_id))


@checkin_bp.route('', methods=['POST'])
@require_member
def check_in():
    """Check in for today. A second call the same day awards nothing."""
    result = CompletionService().daily_checkin(g.profile_id)
    return jsonify({
        'success': True,
        'already_completed': result['already_completed'],
        'coins_earned': result['coins_earned'],
        'checkin': result['record'].to_dict(),
    })
