"""
Identity middleware.

Authentication happens upstream; the gateway forwards the signed-in
member's id in `X-Profile-Id`, and admin tooling sends the shared
`X-Admin-Token`. Member endpoints always act on `g.profile_id`, never on
an id taken from the URL or body.
"""
import hmac
from functools import wraps
from flask import current_app, g, request
from ..extensions import db
from ..models import Profile, ApprovalStatus
from ..utils.errors import ErrorCode, forbidden, unauthorized, not_found


def get_profile_id_from_request():
    """Member id forwarded by the gateway, or None."""
    raw = request.headers.get('X-Profile-Id')
    if not raw:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def require_member(f):
    """
    Decorator for member-facing endpoints.

    Sets g.profile_id and g.profile. Rejected registrations are refused.

    Usage:
        @require_member
        def my_endpoint():
            profile_id = g.profile_id
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        profile_id = get_profile_id_from_request()
        if profile_id is None:
            return unauthorized('Missing member identity')

        profile = db.session.get(Profile, profile_id)
        if profile is None:
            return not_found('Member not found', ErrorCode.MEMBER_NOT_FOUND)

        if profile.approval_status == ApprovalStatus.REJECTED.value:
            return forbidden('Membership was not approved')

        g.profile_id = profile.id
        g.profile = profile
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Decorator for admin endpoints. Sets g.admin to the reviewer name
    (from `X-Admin-User`, default 'admin').
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('ADMIN_API_TOKEN') or ''
        supplied = request.headers.get('X-Admin-Token') or ''
        if not expected or not hmac.compare_digest(expected, supplied):
            return unauthorized('Admin token required')

        g.admin = request.headers.get('X-Admin-User') or 'admin'
        return f(*args, **kwargs)

    return decorated_function
