"""
Pytest fixtures for ShopDesk backend tests.

Provides the in-memory application, a clean database per test, one user
per role with ready-made auth headers, and a small stocked catalog.
"""

import pytest

from shopdesk import create_app
from shopdesk.extensions import db
from shopdesk.models import Product
from shopdesk.services import session_service, stock_service
from shopdesk.services.user_service import add_user


TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'DEFAULT_TAX_RATE_PCT': 14.0,
        'DEFAULT_CURRENCY': 'EGP',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def users(db_session):
    """One active user per role, keyed by role name."""
    created = {}
    for role in ("admin", "cashier", "stock", "viewer"):
        created[role] = add_user(
            username=role,
            email=f"{role}@shopdesk.test",
            password=TEST_PASSWORD,
            role=role,
            display_name=role.capitalize(),
        )
    return created


def auth_headers(user) -> dict:
    """Helper to create Authorization headers for a user."""
    _, token = session_service.create_session(user.id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(users):
    return auth_headers(users["admin"])


@pytest.fixture(scope='function')
def cashier_headers(users):
    return auth_headers(users["cashier"])


@pytest.fixture(scope='function')
def stock_headers(users):
    return auth_headers(users["stock"])


@pytest.fixture(scope='function')
def viewer_headers(users):
    return auth_headers(users["viewer"])


def make_product(name: str, price_cents: int, stock: int = 0, *, barcode: str | None = None, purchase_cents: int = 0):
    product = Product(
        name=name,
        barcode=barcode,
        sale_price_cents=price_cents,
        purchase_price_cents=purchase_cents,
        min_sale_quantity=1,
    )
    db.session.add(product)
    db.session.commit()
    if stock:
        stock_service.add_stock_movement({
            "product_id": product.id,
            "type": "in",
            "quantity": stock,
            "note": "Opening stock",
            "reason": "purchase",
        })
    return product


@pytest.fixture(scope='function')
def products(db_session):
    """Two stocked products: widget 100.00 (10 on hand), gadget 25.50 (5 on hand)."""
    return {
        "widget": make_product("Widget", 10000, 10, barcode="1000000000011", purchase_cents=6000),
        "gadget": make_product("Gadget", 2550, 5, barcode="1000000000028", purchase_cents=1500),
    }


@pytest.fixture(scope='function')
def cashier_shift(users):
    from shopdesk.services import pos_service
    return pos_service.open_shift(users["cashier"].id)
