"""
Middleware package for the loyalty portal.
"""
from .member_auth import require_member, require_admin, get_profile_id_from_request

__all__ = ['require_member', 'require_admin', 'get_profile_id_from_request']
