# Overview: Flask CLI commands for database bootstrap and catalog seeding.

# backend/kasir/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "kasir:create_app".
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask store init-db
#   Create missing tables and seed the default payment methods (idempotent).
# - python -m flask store reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask store seed-payment-methods
#   Insert the default payment methods, or re-add "Hutang" if it was deleted.
# - python -m flask store add-product --name "Teh Botol" --price 5000 --package-qty 24 --package-price 110000 --stock 48
#   Add a catalog product with its opening stock.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import catalog_service, payment_method_service
from .validation import ValidationError


@click.group('store')
def store_group():
    """Shop database bootstrap and catalog commands."""


@store_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables and seed defaults."""
    db.create_all()
    seeded = payment_method_service.ensure_default_payment_methods()
    click.echo("PASS Tables ready.")
    if seeded:
        click.echo("PASS Default payment methods inserted.")


@store_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    payment_method_service.ensure_default_payment_methods()

    click.echo("PASS Database reset complete.")


@store_group.command('seed-payment-methods')
@with_appcontext
def seed_payment_methods():
    """Insert default payment methods where missing."""
    if payment_method_service.ensure_default_payment_methods():
        click.echo("PASS Payment methods seeded.")
    else:
        click.echo("SKIP Payment methods already present.")
    for method in payment_method_service.get_payment_methods():
        flag = " (debt)" if payment_method_service.is_debt_method(method) else ""
        click.echo(f"{method.id:<5} {method.name}{flag}")


@store_group.command('add-product')
@click.option('--name', required=True, help='Product name')
@click.option('--code', default=None, help='Product code / barcode')
@click.option('--price', type=int, required=True, help='Unit selling price')
@click.option('--package-qty', type=int, default=None, help='Units per package')
@click.option('--package-price', type=int, default=None, help='Price of one package')
@click.option('--purchase-price', type=int, default=None, help='Unit purchase (cost) price')
@click.option('--stock', type=int, default=0, show_default=True, help='Opening stock')
@with_appcontext
def add_product(name, code, price, package_qty, package_price, purchase_price, stock):
    """Add a product to the catalog."""
    try:
        product = catalog_service.create_product(
            name=name,
            code=code,
            price=price,
            package_qty=package_qty,
            package_price=package_price,
            purchase_price=purchase_price,
            stock=stock,
        )
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Product {product.id} created: {product.name} (stock {product.stock})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(store_group)
