# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/kasir/routes/sales.py
"""Sales API routes: create, edit, cancel and preview a sale."""

from flask import Blueprint, request, jsonify, current_app

from ..services import sales_service
from ..services.cart_service import build_cart
from ..services.sales_service import SaleInput
from ..validation import (
    ValidationError,
    ConsistencyError,
    NotFoundError,
    coerce_int,
    coerce_bool,
    optional_str,
)


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def sale_input_from_payload(data: dict) -> SaleInput:
    """
    Payload:
    {
        "items": [{"product_id": 1, "quantity": 12}, ...],
        "payment_method_id": 1,
        "paid": 50000,
        "transaction_date": "2026-10-19",
        "customer_id": 3,              (optional)
        "customer_name": "Budi",       (optional, debt sales without customer_id)
        "customer_phone": "...",       (optional)
        "customer_address": "...",     (optional)
        "redeem_points": false
    }
    """
    items = data.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list", field="items")

    return SaleInput(
        cart=build_cart(items),
        payment_method_id=coerce_int(data.get("payment_method_id"), "payment_method_id", required=False),
        paid=coerce_int(data.get("paid"), "paid", required=False) or 0,
        transaction_date=data.get("transaction_date"),
        customer_id=coerce_int(data.get("customer_id"), "customer_id", required=False),
        customer_name=optional_str(data.get("customer_name")),
        customer_phone=optional_str(data.get("customer_phone")),
        customer_address=optional_str(data.get("customer_address")),
        redeem_points=coerce_bool(data.get("redeem_points", False)),
    )


@sales_bp.post("")
def create_sale_route():
    """Validate and commit a new sale."""
    try:
        data = request.get_json(silent=True) or {}
        sale_id = sales_service.create_sale(sale_input_from_payload(data))
        return jsonify(sales_service.get_sale(sale_id)), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConsistencyError:
        return jsonify({"error": ConsistencyError.USER_MESSAGE}), 409
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """Replace a committed sale with a new version."""
    try:
        data = request.get_json(silent=True) or {}
        sales_service.update_sale(sale_id, sale_input_from_payload(data))
        return jsonify(sales_service.get_sale(sale_id)), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConsistencyError:
        return jsonify({"error": ConsistencyError.USER_MESSAGE}), 409
    except Exception:
        current_app.logger.exception("Failed to update sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
def cancel_sale_route(sale_id: int):
    """Cancel a sale and return its stock, points and receivable."""
    try:
        sales_service.cancel_sale(sale_id)
        return jsonify(sales_service.get_sale(sale_id)), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConsistencyError:
        return jsonify({"error": ConsistencyError.USER_MESSAGE}), 409
    except Exception:
        current_app.logger.exception("Failed to cancel sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/preview")
def preview_sale_route():
    """
    Price a cart (package/unit split, redemption, points) without saving.

    An optional "sale_id" quotes an edit of that sale.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale_id = coerce_int(data.get("sale_id"), "sale_id", required=False)
        preview = sales_service.preview_sale(sale_input_from_payload(data), sale_id=sale_id)
        return jsonify(preview), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to preview sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales_route():
    try:
        limit = coerce_int(request.args.get("limit"), "limit", required=False, minimum=1) or 50
        offset = coerce_int(request.args.get("offset"), "offset", required=False, minimum=0) or 0
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    sales = sales_service.list_sales(limit=min(limit, 200), offset=offset)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Sale header with lines and receivable."""
    try:
        return jsonify(sales_service.get_sale(sale_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
