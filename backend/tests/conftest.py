"""
Pytest fixtures for tillpoint backend tests.

Every test gets its own app on an in-memory SQLite database and its own
held-sales file, so terminals, carts and holds never leak between tests.
"""

from decimal import Decimal

import pytest
from tillpoint import create_app
from tillpoint.errors import PersistenceFailure
from tillpoint.extensions import db
from tillpoint.models import Product
from tillpoint.services.settings_service import PosSettings
from tillpoint.services.storage import Collection


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'HELD_SALES_PATH': str(tmp_path / 'held_sales.json'),
        'TAX_ENABLED': False,
        'TAX_PERCENTAGE': '18',
        'ENABLE_NEGATIVE_STOCK': False,
        'ATOMIC_STOCK_WRITES': True,
        'LOG_SALE_STOCK_MOVEMENTS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    yield db.session
    db.session.rollback()


@pytest.fixture
def cashier_headers():
    return {"X-Cashier": "alice"}


@pytest.fixture
def make_product(db_session):
    """Factory: make_product(sku="A1", selling_price="1500", ...) -> committed Product."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "category": "General",
            "cost_price": Decimal("1000"),
            "selling_price": Decimal("1500"),
            "min_selling_price": Decimal("1200"),
            "stock_quantity": 10,
        }
        fields.update(overrides)
        for key in ("cost_price", "selling_price", "middle_man_price", "min_selling_price"):
            if fields.get(key) is not None:
                fields[key] = Decimal(str(fields[key]))
        product = Product(**fields)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def product(make_product):
    """cost=1000, retail=1500, min retail=1200, stock=10."""
    return make_product(sku="BEV-001", name="Juice Crate")


@pytest.fixture
def settings():
    return PosSettings(tax_enabled=True, tax_percentage=Decimal("18"))


@pytest.fixture
def stock_of(db_session):
    """Fresh read of a product's stock from the database."""
    def _stock(product_id):
        db_session.expire_all()
        return db_session.get(Product, product_id).stock_quantity
    return _stock


@pytest.fixture
def fail_stock_update(monkeypatch):
    """fail_stock_update(product_id): stock writes to that product raise PersistenceFailure."""
    def _fail(product_id):
        original_update = Collection.update

        def failing_update(self, entity_id, **fields):
            if self.model is Product and entity_id == product_id:
                raise PersistenceFailure("update on products failed")
            return original_update(self, entity_id, **fields)

        monkeypatch.setattr(Collection, "update", failing_update)
    return _fail
