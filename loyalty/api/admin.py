"""
Admin API endpoints.

Handles:
- Manual points / coins adjustments
- Redemption fulfilment status
- Receipt and manual-mission review
- Tier settings and ledger audit
- Coin exchange settings
"""
from flask import Blueprint, g, jsonify, request
from ..models import MissionCompletion, Receipt, ReviewStatus, TransactionSource
from ..middleware import require_admin
from ..services.ledger_service import LedgerService, POINTS, COINS
from ..services.redemption_service import RedemptionService
from ..services.review_service import ReviewService
from ..services.settings_service import SettingsService
from ..services.tier_service import TierService, validate_tier_settings
from ..utils.errors import ErrorCode, bad_request

admin_bp = Blueprint('admin', __name__)


# ==============================================================================
# BALANCE ADJUSTMENTS
# ==============================================================================

def _adjust(profile_id, currency):
    data = request.get_json(silent=True) or {}
    action = data.get('action')
    amount = data.get('amount')

    if action not in ('add', 'deduct'):
        return bad_request("action must be 'add' or 'deduct'", ErrorCode.INVALID_FIELD)
    if not isinstance(amount, int) or isinstance(amount, bool):
        return bad_request('amount must be an integer', ErrorCode.INVALID_FIELD)

    ledger = LedgerService()
    operation = getattr(ledger, f'{action}_{currency}')
    result = operation(
        profile_id,
        amount,
        data.get('source') or TransactionSource.ADMIN.value,
        description=data.get('description') or f'Adjusted by {g.admin}',
    )
    return jsonify(result)


@admin_bp.route('/members/<int:profile_id>/points', methods=['POST'])
@require_admin
def adjust_points(profile_id):
    """
    Add or deduct points.

    JSON body:
        action: 'add' or 'deduct'
        amount: Positive integer
        source: Ledger source tag (default 'admin')
        description: Reason shown in the member's history
    """
    return _adjust(profile_id, POINTS)


@admin_bp.route('/members/<int:profile_id>/coins', methods=['POST'])
@require_admin
def adjust_coins(profile_id):
    """Add or deduct coins. Same body as the points endpoint."""
    return _adjust(profile_id, COINS)


# ==============================================================================
# REDEMPTIONS
# ==============================================================================

@admin_bp.route('/redemptions/<int:redemption_id>', methods=['PATCH'])
@require_admin
def update_redemption(redemption_id):
    """
    Move a redemption to a new status.

    JSON body:
        status: processing, shipped, completed or cancelled
        tracking_number: Carrier tracking number
        notes: Admin note
    """
    data = request.get_json(silent=True) or {}
    if not data.get('status'):
        return bad_request('status is required', ErrorCode.MISSING_FIELD)

    redemption = RedemptionService().update_status(
        redemption_id,
        data['status'],
        tracking_number=data.get('tracking_number'),
        notes=data.get('notes'),
    )
    return jsonify({'success': True, 'redemption': redemption.to_dict()})


# ==============================================================================
# REVIEWS
# ==============================================================================

@admin_bp.route('/receipts', methods=['GET'])
@require_admin
def list_receipts():
    """
    Receipts by status.

    Query params:
        status: pending (default), approved or rejected
    """
    status = request.args.get('status', ReviewStatus.PENDING.value)
    receipts = Receipt.query.filter_by(status=status).order_by(Receipt.created_at.asc()).all()
    return jsonify({'receipts': [r.to_dict() for r in receipts], 'count': len(receipts)})


@admin_bp.route('/receipts/<int:receipt_id>/review', methods=['POST'])
@require_admin
def review_receipt(receipt_id):
    """
    Approve or reject a pending receipt.

    JSON body:
        approve: true/false (required)
        points: Points to award when approving (0-100000)
        admin_notes: Note stored on the receipt
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get('approve'), bool):
        return bad_request('approve must be true or false', ErrorCode.INVALID_FIELD)

    result = ReviewService().review_receipt(
        receipt_id,
        approve=data['approve'],
        points=data.get('points', 0),
        admin_notes=data.get('admin_notes'),
        reviewer=g.admin,
    )
    return jsonify({
        'success': True,
        'receipt': result['receipt'].to_dict(),
        'points_awarded': result['points_awarded'],
    })


@admin_bp.route('/mission-completions', methods=['GET'])
@require_admin
def list_mission_completions():
    status = request.args.get('status', ReviewStatus.PENDING.value)
    completions = MissionCompletion.query.filter_by(status=status).order_by(
        MissionCompletion.created_at.asc()
    ).all()
    return jsonify({'completions': [c.to_dict() for c in completions], 'count': len(completions)})


@admin_bp.route('/mission-completions/<int:completion_id>/review', methods=['POST'])
@require_admin
def review_mission_completion(completion_id):
    """
    Approve or reject a manual-proof mission submission.

    JSON body:
        approve: true/false (required)
        admin_notes: Note stored on the completion
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get('approve'), bool):
        return bad_request('approve must be true or false', ErrorCode.INVALID_FIELD)

    result = ReviewService().review_mission_completion(
        completion_id,
        approve=data['approve'],
        admin_notes=data.get('admin_notes'),
        reviewer=g.admin,
    )
    return jsonify({
        'success': True,
        'completion': result['completion'].to_dict(),
        'points_awarded': result['points_awarded'],
        'coins_awarded': result['coins_awarded'],
    })


# ==============================================================================
# TIERS & AUDIT
# ==============================================================================

@admin_bp.route('/tiers', methods=['GET'])
@require_admin
def get_tiers():
    """Effective tier settings and any range problems."""
    service = TierService()
    return jsonify({
        'tiers': service.settings_summary(),
        'problems': validate_tier_settings(service.settings),
    })


@admin_bp.route('/ledger/reconcile', methods=['GET'])
@require_admin
def reconcile_ledger():
    """Members whose stored balance differs from the ledger sum."""
    mismatches = LedgerService().reconcile()
    return jsonify({'mismatches': mismatches, 'count': len(mismatches)})


# ==============================================================================
# EXCHANGE SETTINGS
# ==============================================================================

@admin_bp.route('/settings/exchange', methods=['GET'])
@require_admin
def get_exchange_settings():
    return jsonify(SettingsService().get_exchange_settings())


@admin_bp.route('/settings/exchange', methods=['PUT'])
@require_admin
def update_exchange_settings():
    """
    Change the coin exchange settings.

    JSON body (any subset):
        is_active: Exchange switch
        coins_per_point: Coins needed for one point (>= 1)
        min_coins: Smallest exchange allowed (>= 0)
    """
    data = request.get_json(silent=True) or {}
    settings = SettingsService().update_exchange_settings(data, updated_by=g.admin)
    return jsonify({'success': True, **settings})
