"""
Missions API endpoints.

Handles:
- Open missions the member may take, with the award they would receive
- Mission submission (QR, location, manual proof)
"""
from datetime import datetime
from flask import Blueprint, g, jsonify, request
from sqlalchemy import or_
from ..models import Mission, MissionCompletion
from ..middleware import require_member
from ..services.completion_service import CompletionService
from ..services.eligibility import MemberSnapshot, filter_eligible
from ..services.reward_overrides import resolve_award

missions_bp = Blueprint('missions', __name__)


@missions_bp.route('', methods=['GET'])
@require_member
def list_missions():
    """
    Active, unexpired missions visible to the member.

    `display_points`/`display_coins` already include any reward override
    matching the member.
    """
    member = MemberSnapshot.from_profile(g.profile)
    now = datetime.utcnow()
    missions = Mission.query.filter(
        Mission.is_active == True,  # noqa: E712
        or_(Mission.end_date.is_(None), Mission.end_date >= now),
        or_(Mission.start_date.is_(None), Mission.start_date <= now),
    ).order_by(Mission.created_at.desc(), Mission.id.desc()).all()
    missions = filter_eligible(member, missions)

    completions = MissionCompletion.query.filter_by(profile_id=g.profile_id).all()
    status_map = {c.mission_id: c.status for c in completions}

    results = []
    for mission in missions:
        points, coins = resolve_award(member, mission.points_reward, mission.coins_reward,
                                      mission.reward_overrides)
        results.append({
            **mission.to_dict(),
            'display_points': points,
            'display_coins': coins,
            'completion_status': status_map.get(mission.id),
        })

    return jsonify({'missions': results, 'count': len(results)})


@missions_bp.route('/<int:mission_id>/complete', methods=['POST'])
@require_member
def complete_mission(mission_id):
    """
    Submit a mission.

    JSON body:
        qr_code: Scanned code (QR missions)
        location / latitude + longitude: Where the member is (location missions)
        proof_image_url: Uploaded proof (manual missions)
    """
    data = request.get_json(silent=True) or {}
    result = CompletionService().complete_mission(g.profile_id, mission_id, data)
    return jsonify({
        'success': True,
        'already_completed': result['already_completed'],
        'points_earned': result['points_earned'],
        'coins_earned': result['coins_earned'],
        'completion': result['record'].to_dict(),
    })
