# Overview: Catalog provider; read access to products plus the admin-side create used by the CLI.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..models import Product
from ..validation import ValidationError, NotFoundError
from .concurrency import resolve_session, unit_of_work

PRODUCT_MUTABLE_FIELDS = {"code", "name", "price", "package_price", "package_qty", "purchase_price", "stock"}


def get_product(product_id: int, *, session=None) -> Product:
    session = resolve_session(session)
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", entity="product", entity_id=product_id)
    return product


def get_products(*, session=None, search: str | None = None) -> list[Product]:
    session = resolve_session(session)
    q = session.query(Product)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter((Product.name.ilike(like)) | (Product.code.ilike(like)))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def _check_product_fields(fields: dict) -> None:
    name = (fields.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required", field="name")
    for key in ("price", "package_price", "package_qty", "purchase_price", "stock"):
        value = fields.get(key)
        if value is not None and value < 0:
            raise ValidationError(f"{key} must not be negative", field=key)
    if (fields.get("package_price") is None) != (not fields.get("package_qty")):
        raise ValidationError(
            "package_price and package_qty must be set together",
            field="package_qty",
        )


def create_product(*, session=None, **fields) -> Product:
    """Create a catalog product (stock seeding happens here, never through sales)."""
    session = resolve_session(session)
    patch = {k: v for k, v in fields.items() if k in PRODUCT_MUTABLE_FIELDS}
    _check_product_fields(patch)
    patch["name"] = patch["name"].strip()
    patch.setdefault("price", 0)
    patch.setdefault("stock", 0)

    product = Product(**patch)
    try:
        with unit_of_work(session):
            session.add(product)
    except IntegrityError:
        raise ValidationError("Product code already exists", field="code")
    return product
