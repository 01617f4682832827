"""
Content API endpoints.

Handles:
- Published content the member may see, with their progress
- Content detail (quiz/survey questions without answers)
- Completion of articles, videos, quizzes and surveys
"""
from flask import Blueprint, g, jsonify, request
from ..extensions import db
from ..models import Content, ContentProgress, ContentType
from ..middleware import require_member
from ..services.completion_service import CompletionService
from ..services.eligibility import MemberSnapshot, filter_eligible, is_eligible
from ..utils.errors import ErrorCode, bad_request, not_found

content_bp = Blueprint('content', __name__)


@content_bp.route('', methods=['GET'])
@require_member
def list_content():
    """
    Published content visible to the member.

    Query params:
        content_type: article, video, quiz or survey
    """
    member = MemberSnapshot.from_profile(g.profile)
    query = Content.query.filter(Content.is_published == True)  # noqa: E712

    content_type = request.args.get('content_type')
    if content_type:
        valid = [t.value for t in ContentType]
        if content_type not in valid:
            return bad_request(f'content_type must be one of: {valid}', ErrorCode.INVALID_FIELD)
        query = query.filter(Content.content_type == content_type)

    items = filter_eligible(member, query.order_by(Content.published_at.desc(), Content.id.desc()).all())

    progress_rows = ContentProgress.query.filter(
        ContentProgress.profile_id == g.profile_id,
        ContentProgress.content_id.in_([c.id for c in items] or [0]),
    ).all()
    progress_map = {p.content_id: p for p in progress_rows}

    return jsonify({
        'content': [{
            **c.to_dict(),
            'is_completed': bool(progress_map.get(c.id) and progress_map[c.id].is_completed),
            'progress_percent': progress_map[c.id].progress_percent if c.id in progress_map else 0,
        } for c in items],
        'count': len(items),
    })


@content_bp.route('/<int:content_id>', methods=['GET'])
@require_member
def get_content(content_id):
    content = db.session.get(Content, content_id)
    member = MemberSnapshot.from_profile(g.profile)
    if not content or not content.is_published or not is_eligible(member, content):
        return not_found('Content not found', ErrorCode.ITEM_NOT_FOUND)

    progress = ContentProgress.query.filter_by(profile_id=g.profile_id, content_id=content_id).first()
    return jsonify({
        'content': {**content.to_dict(include_questions=True), 'body': content.body},
        'progress': progress.to_dict() if progress else None,
    })


@content_bp.route('/<int:content_id>/complete', methods=['POST'])
@require_member
def complete_content(content_id):
    """
    Complete (or record progress on) a content item.

    JSON body by type:
        article/video: {"progress_percent": 100}
        quiz: {"answers": {"<question_id>": <option_index>}}
        survey: {"responses": {"<question_id>": <answer>}}

    Returns:
        Progress record; `already_completed` is true when nothing new was awarded
    """
    data = request.get_json(silent=True) or {}
    result = CompletionService().complete_content(g.profile_id, content_id, data)
    return jsonify({
        'success': True,
        'already_completed': result['already_completed'],
        'points_earned': result['points_earned'],
        'progress': result['record'].to_dict(),
    })
