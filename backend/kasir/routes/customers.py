# Overview: Flask API routes for customers, their points history and receivables.

from flask import Blueprint, request, jsonify

from ..services import customer_service, receivable_service
from ..validation import ValidationError, NotFoundError, coerce_int


customers_bp = Blueprint("customers", __name__, url_prefix="/api")


@customers_bp.get("/customers")
def list_customers():
    customers = customer_service.list_customers()
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200


@customers_bp.post("/customers")
def create_customer():
    data = request.get_json(silent=True) or {}
    try:
        customer_id = customer_service.create_customer(
            data.get("name"),
            data.get("phone"),
            data.get("address"),
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    customer = customer_service.get_customer(customer_id)
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/customers/<int:customer_id>/points-history")
def points_history(customer_id: int):
    """Paginated point balance changes, newest first."""
    try:
        limit = coerce_int(request.args.get("limit"), "limit", required=False, minimum=1) or 50
        offset = coerce_int(request.args.get("offset"), "offset", required=False, minimum=0) or 0
        rows = customer_service.get_points_history(customer_id, limit=min(limit, 200), offset=offset)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"items": [r.to_dict() for r in rows]}), 200


@customers_bp.get("/receivables")
def list_receivables():
    """
    Query params:
    - status: pending | paid (optional)
    - customer_id: int (optional)
    """
    try:
        customer_id = coerce_int(request.args.get("customer_id"), "customer_id", required=False)
        rows = receivable_service.list_receivables(
            status=request.args.get("status"),
            customer_id=customer_id,
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    return jsonify({"items": rows, "count": len(rows)}), 200


@customers_bp.post("/receivables/<int:receivable_id>/status")
def set_receivable_status(receivable_id: int):
    """Mark a receivable paid or pending again: {"status": "paid"}."""
    data = request.get_json(silent=True) or {}
    try:
        receivable = receivable_service.set_receivable_status(receivable_id, data.get("status"))
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"receivable": receivable.to_dict()}), 200
