from kasir.models import Product, PaymentMethod


def test_init_db_seeds_payment_methods(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["store", "init-db"])

    assert result.exit_code == 0
    assert "Tables ready" in result.output
    assert db_session.query(PaymentMethod).count() == 5


def test_seed_payment_methods_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["store", "seed-payment-methods"])

    result = runner.invoke(args=["store", "seed-payment-methods"])

    assert result.exit_code == 0
    assert "already present" in result.output
    assert "Hutang (debt)" in result.output


def test_add_product(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "store", "add-product",
        "--name", "Teh Botol", "--code", "TB-01", "--price", "5000",
        "--package-qty", "24", "--package-price", "110000", "--stock", "48",
    ])

    assert result.exit_code == 0, result.output
    product = db_session.query(Product).filter_by(code="TB-01").one()
    assert (product.price, product.package_qty, product.package_price, product.stock) == (5000, 24, 110000, 48)


def test_add_product_rejects_half_package_pricing(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["store", "add-product", "--name", "Gula", "--price", "10", "--package-qty", "5"])

    assert result.exit_code != 0
    assert "package_price and package_qty must be set together" in result.output
    assert db_session.query(Product).count() == 0
