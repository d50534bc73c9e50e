# Overview: Flask CLI commands for database bootstrap, demo data and stock inspection.

# backend/tillpoint/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to tillpoint (PowerShell: $env:FLASK_APP="tillpoint").
# - Use: python -m flask pos <command> [options]
#
# - python -m flask pos init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
# - python -m flask pos reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask pos seed-demo
#   Insert a small demo catalog; existing SKUs are left alone.
# - python -m flask pos low-stock [--threshold 5]
#   List products at or below the low-stock threshold.
# - python -m flask pos clear-sales --yes
#   Delete the whole sale history without restoring stock.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services.inventory_service import low_stock_products
from .services.reconciliation_service import clear_sales_history


DEMO_PRODUCTS = [
    # sku, name, category, cost, retail, middle man, retail floor, stock
    ("BEV-001", "Mineral Water 500ml", "Beverages", "600", "1000", "800", "900", 48),
    ("BEV-002", "Orange Juice 1L", "Beverages", "2200", "3500", "3000", "3200", 12),
    ("SNK-001", "Potato Crisps", "Snacks", "900", "1500", None, "1200", 30),
    ("HSE-001", "Dish Soap", "Household", "1800", "2500", "2200", None, 4),
    ("STA-001", "Ballpoint Pen", "Stationery", "150", "300", None, None, 100),
]


@click.group('pos')
def pos_group():
    """POS database and inventory commands."""


@pos_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@pos_group.command('reset-db')
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

    click.echo("PASS Database reset complete. Run 'python -m flask pos seed-demo' for sample data.")


@pos_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert the demo catalog. Products whose SKU already exists are skipped."""
    created = 0
    for sku, name, category, cost, retail, middle, floor, stock in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            click.echo(f"WARN  {sku} already exists, skipping...")
            continue
        db.session.add(Product(
            sku=sku,
            name=name,
            category=category,
            cost_price=Decimal(cost),
            selling_price=Decimal(retail),
            middle_man_price=Decimal(middle) if middle else None,
            min_selling_price=Decimal(floor) if floor else None,
            stock_quantity=stock,
        ))
        created += 1
    db.session.commit()
    click.echo(f"PASS Created {created} demo products.")


@pos_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Override LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock(threshold):
    """List products at or below the low-stock threshold."""
    products = low_stock_products(threshold)
    if not products:
        click.echo("PASS No low-stock products.")
        return
    click.echo(f"{'ID':<6} {'SKU':<12} {'NAME':<30} {'STOCK':>6}")
    for p in products:
        click.echo(f"{p.id:<6} {p.sku:<12} {p.name[:30]:<30} {p.stock_quantity:>6}")


@pos_group.command('clear-sales')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def clear_sales(yes):
    """Delete every sale. Stock is NOT restored."""
    if not yes:
        click.confirm("WARN This will DELETE the whole sale history. Are you sure?", abort=True)
    removed = clear_sales_history()
    click.echo(f"PASS Removed {removed} sales.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(pos_group)
