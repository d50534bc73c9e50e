# Overview: Pytest coverage for the `flask pos` CLI commands.

from tillpoint.models import Product


def test_seed_demo_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["pos", "seed-demo"])
    assert "Created 5 demo products" in result.output
    result = runner.invoke(args=["pos", "seed-demo"])
    assert "Created 0 demo products" in result.output
    assert db_session.query(Product).count() == 5


def test_low_stock_lists_products(app, make_product):
    make_product(sku="LOW-1", name="Dish Soap", stock_quantity=2)
    result = app.test_cli_runner().invoke(args=["pos", "low-stock"])
    assert "LOW-1" in result.output


def test_clear_sales_needs_confirmation(app):
    result = app.test_cli_runner().invoke(args=["pos", "clear-sales"], input="n\n")
    assert result.exit_code == 1
