"""
Receipt API endpoints.

Members upload a receipt (the image is stored elsewhere; only its URL
arrives here) and follow its review status.
"""
from flask import Blueprint, g, jsonify, request
from ..models import Receipt
from ..middleware import require_member
from ..services.review_service import ReviewService

receipts_bp = Blueprint('receipts', __name__)


@receipts_bp.route('', methods=['POST'])
@require_member
def submit_receipt():
    """
    Submit a receipt for review.

    JSON body:
        image_url: Uploaded receipt image (required)
        amount: Purchase amount
        store_name: Where it was bought
    """
    data = request.get_json(silent=True) or {}
    receipt = ReviewService().submit_receipt(
        g.profile_id,
        image_url=data.get('image_url'),
        amount=data.get('amount'),
        store_name=data.get('store_name'),
    )
    return jsonify({'success': True, 'receipt': receipt.to_dict()}), 201


@receipts_bp.route('', methods=['GET'])
@require_member
def list_receipts():
    receipts = Receipt.query.filter_by(profile_id=g.profile_id).order_by(
        Receipt.created_at.desc(), Receipt.id.desc()
    ).all()
    return jsonify({'receipts': [r.to_dict() for r in receipts], 'count': len(receipts)})
