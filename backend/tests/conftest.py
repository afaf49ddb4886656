"""
Pytest fixtures for back office tests.

Provides an in-memory database, seeded roles and permissions, employees
for each default role, catalog items with stock, and a test client.
"""

from decimal import Decimal

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Category, Coupon, Employee, Item, Member, Role
from backoffice.services import permission_service, stock_service
from backoffice.services.auth_service import create_default_roles, hash_password


TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TAX_RATE': '0.01',
        'POINT_RATE': '0.01',
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
def setup_roles(db_session):
    """Setup default roles and permissions."""
    create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()
    db_session.commit()


def make_employee(db_session, username: str, role_name: str, code: str) -> Employee:
    role = db_session.query(Role).filter_by(name=role_name).first()
    employee = Employee(
        code=code,
        name=username.title(),
        username=username,
        email=f"{username}@backoffice.test",
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        role_id=role.id,
    )
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture(scope='function')
def cashier(db_session, setup_roles):
    """Cashier employee (1% commission)."""
    return make_employee(db_session, "cashier", "cashier", "EMP/TEST/0")


@pytest.fixture(scope='function')
def admin(db_session, setup_roles):
    """Admin employee (1% commission)."""
    return make_employee(db_session, "admin", "admin", "EMP/TEST/1")


@pytest.fixture(scope='function')
def super_employee(db_session, setup_roles):
    """Super employee (5% commission)."""
    return make_employee(db_session, "boss", "super", "EMP/TEST/2")


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Beverages")
    db_session.add(category)
    db_session.commit()
    return category


def make_item(db_session, name: str, price: str, code: str, category=None, lots=()) -> Item:
    """Create an item and one stock lot per (cogs, qty) pair, oldest first."""
    item = Item(code=code, name=name, price=Decimal(price), category_id=category.id if category else None)
    db_session.add(item)
    db_session.flush()
    for cogs, qty in lots:
        stock_service.create_lot(item.id, Decimal(cogs), qty)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def item_x(db_session, category):
    """Item X: 200 units at cogs 5000, priced 2000."""
    return make_item(db_session, "Item X", "2000", "ITM/TEST/0", category, lots=[("5000", 200)])


@pytest.fixture(scope='function')
def item_y(db_session, category):
    """Item Y: two lots, 3 units at cogs 100 then 10 at cogs 120."""
    return make_item(db_session, "Item Y", "150", "ITM/TEST/1", category, lots=[("100", 3), ("120", 10)])


@pytest.fixture(scope='function')
def member(db_session):
    member = Member(code="MBR/TEST/0", name="Jane Member", phone_no="0800000000", point=0)
    db_session.add(member)
    db_session.commit()
    return member


@pytest.fixture(scope='function')
def coupon(db_session):
    """Coupon worth 5000."""
    coupon = Coupon(code="HEMAT5K", name="Hemat 5000", value=Decimal("5000"))
    db_session.add(coupon)
    db_session.commit()
    return coupon


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for an employee."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, cashier.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))


@pytest.fixture(scope='function')
def super_headers(client, super_employee):
    return auth_headers(get_auth_token(client, super_employee.username))
