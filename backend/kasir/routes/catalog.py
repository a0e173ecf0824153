# Overview: Flask API routes for products and payment methods; read-mostly catalog access.

from flask import Blueprint, request, jsonify

from ..services import catalog_service, payment_method_service
from ..validation import ValidationError, NotFoundError


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.get("/products")
def list_products():
    """
    List products, optionally filtered.

    Query params:
    - q: str (optional) - substring of name or code
    """
    products = catalog_service.get_products(search=request.args.get("q"))
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@catalog_bp.get("/products/<int:product_id>")
def get_product(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"product": product.to_dict()}), 200


@catalog_bp.get("/payment-methods")
def list_payment_methods():
    methods = payment_method_service.get_payment_methods()
    return jsonify({"items": [m.to_dict() for m in methods]}), 200


@catalog_bp.post("/payment-methods")
def create_payment_method():
    data = request.get_json(silent=True) or {}
    try:
        method = payment_method_service.add_payment_method(data.get("name"))
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    return jsonify({"payment_method": method.to_dict()}), 201


@catalog_bp.delete("/payment-methods/<int:method_id>")
def delete_payment_method(method_id: int):
    try:
        payment_method_service.delete_payment_method(method_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    return "", 204
