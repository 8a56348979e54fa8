import os
import tempfile
from datetime import datetime
from decimal import Decimal

import pytest
from config import TestingConfig
from app import create_app
from app.extensions import db
from app.models import User, Location, Product, Lot


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    # Create a temporary file to isolate the database for each test
    db_fd, db_path = tempfile.mkstemp()

    app = create_app(TestingConfig, {
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
    })

    with app.app_context():
        db.create_all()
        init_test_data()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()

    # Close and remove the temporary database
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


def login(client, username, password='secret'):
    return client.post('/auth/login', data={
        'login': username,
        'password': password
    })


@pytest.fixture
def admin_client(client):
    """A test client authenticated as an unrestricted admin."""
    login(client, 'admin')
    return client


@pytest.fixture
def branch_client(client):
    """A test client authenticated as an admin limited to Gulshan Showroom."""
    login(client, 'branch')
    return client


@pytest.fixture
def sales_client(client):
    """A test client authenticated as a sales manager."""
    login(client, 'sales')
    return client


@pytest.fixture
def login_as(client):
    """Log the shared test client in as any seeded user."""
    def _login(username):
        client.get('/auth/logout')
        return login(client, username)
    return _login


@pytest.fixture
def seed(app):
    """Seeded row ids, looked up by name."""
    with app.app_context():
        locations = {loc.name: loc.id for loc in Location.query.all()}
        product = Product.query.filter_by(product_code='CTN-001').first()
        lots = {lot.lot_number: lot.id for lot in product.lots}
        return {
            'product': product.id,
            'lots': lots,
            'main': locations['Main Warehouse'],
            'gulshan': locations['Gulshan Showroom'],
            'dhanmondi': locations['Dhanmondi Showroom'],
            'closed': locations['Closed Outlet'],
        }


def init_test_data():
    """Initialize test data."""
    main = Location(name='Main Warehouse', type='warehouse')
    gulshan = Location(name='Gulshan Showroom', type='showroom')
    dhanmondi = Location(name='Dhanmondi Showroom', type='showroom')
    closed = Location(name='Closed Outlet', type='showroom', status='inactive')
    db.session.add_all([main, gulshan, dhanmondi, closed])

    users = [
        ('superadmin', 'super_admin', []),
        ('admin', 'admin', []),
        ('branch', 'admin', [gulshan]),
        ('sales', 'sales_manager', []),
        ('investor', 'investor', []),
    ]
    for username, role, locations in users:
        user = User(username=username, email=f'{username}@test.com', role=role)
        user.set_password('secret')
        user.locations = locations
        db.session.add(user)

    product = Product(
        name='Cotton Poplin',
        product_code='ctn-001',
        category='Cotton',
        unit='meter',
        minimum_stock=50,
        location=main
    )
    db.session.add(product)
    db.session.flush()

    received = datetime(2024, 1, 15)
    db.session.add_all([
        Lot(product_id=product.id, location_id=main.id, lot_number=1,
            quantity=Decimal('100'), purchase_price=Decimal('180'),
            selling_price=Decimal('240'), received_date=received,
            expiry_date=datetime(2026, 1, 15)),
        Lot(product_id=product.id, location_id=gulshan.id, lot_number=2,
            quantity=Decimal('40'), purchase_price=Decimal('185'),
            selling_price=Decimal('245'), received_date=received),
        Lot(product_id=product.id, location_id=main.id, lot_number=3,
            quantity=Decimal('0'), purchase_price=Decimal('190'),
            selling_price=Decimal('250'), received_date=received,
            status='depleted'),
    ])
    db.session.commit()
