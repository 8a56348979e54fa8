from decimal import Decimal

import pytest
from app.activity import log_activity
from app.extensions import db
from app.models import User, Location, Product, Lot, ActivityLog


def test_password_hashing(app):
    with app.app_context():
        user = User(username='tester', email='tester@test.com', role='investor')
        user.set_password('cat')
        assert user.check_password('cat')
        assert not user.check_password('dog')


def test_user_role_is_validated(app):
    with app.app_context():
        with pytest.raises(ValueError):
            User(username='x', email='x@test.com', role='editor')


def test_user_roles(app):
    with app.app_context():
        assert User.query.filter_by(username='superadmin').first().is_super_admin()
        assert User.query.filter_by(username='admin').first().is_admin()
        assert not User.query.filter_by(username='sales').first().is_admin()


def test_location_validation(app):
    with app.app_context():
        with pytest.raises(ValueError):
            Location(name='Depot', type='factory')
        with pytest.raises(ValueError):
            Location(name='  ', type='warehouse')
        with pytest.raises(ValueError):
            Location(name='Depot', type='warehouse', status='closed')


def test_predefined_locations_are_idempotent(app):
    with app.app_context():
        first = Location.get_predefined_locations()
        second = Location.get_predefined_locations()
        assert [loc.id for loc in first] == [loc.id for loc in second]
        assert len(first) == len(Location.PREDEFINED_LOCATIONS)
        assert 'Closed Outlet' not in [loc.name for loc in Location.active()]


def test_product_code_is_normalised(app, seed):
    with app.app_context():
        product = db.session.get(Product, seed['product'])
        assert product.product_code == 'CTN-001'
        with pytest.raises(ValueError):
            product.unit = 'gallon'
        with pytest.raises(ValueError):
            product.minimum_stock = -1


def test_total_stock_counts_active_lots(app, seed):
    with app.app_context():
        product = db.session.get(Product, seed['product'])
        assert product.total_stock == Decimal('140')
        assert product.next_lot_number() == 4

        db.session.get(Lot, seed['lots'][2]).status = 'inactive'
        db.session.commit()
        assert product.total_stock == Decimal('100')


@pytest.mark.parametrize('quantities, minimum, level', [
    (['100', '40'], 50, 'ok'),
    (['30', '20'], 50, 'low'),
    (['0', '0'], 50, 'out'),
])
def test_stock_level(app, seed, quantities, minimum, level):
    with app.app_context():
        product = db.session.get(Product, seed['product'])
        product.minimum_stock = minimum
        for number, quantity in zip((1, 2), quantities):
            db.session.get(Lot, seed['lots'][number]).quantity = Decimal(quantity)
        db.session.commit()
        assert product.check_stock_level() == level


def test_product_search(app, seed):
    with app.app_context():
        assert Product.search('poplin').total == 1
        assert Product.search('ctn').total == 1
        assert Product.search('silk').total == 0
        assert Product.search('', location_id=seed['gulshan']).total == 0
        assert Product.search('', location_id=seed['main']).total == 1


def test_lot_consume(app, seed):
    with app.app_context():
        lot = db.session.get(Lot, seed['lots'][1])
        lot.consume(Decimal('25.5'))
        assert lot.quantity == Decimal('74.5')

        with pytest.raises(ValueError):
            lot.consume(Decimal('0'))
        with pytest.raises(ValueError):
            lot.consume(Decimal('80'))
        with pytest.raises(ValueError):
            lot.consume(Decimal('0.005'))
        assert lot.quantity == Decimal('74.5')


def test_lot_validation(app, seed):
    with app.app_context():
        lot = db.session.get(Lot, seed['lots'][1])
        assert lot.is_offerable
        with pytest.raises(ValueError):
            lot.quantity = Decimal('-1')
        with pytest.raises(ValueError):
            lot.selling_price = 'free'
        with pytest.raises(ValueError):
            lot.status = 'lost'
        with pytest.raises(ValueError):
            lot.lot_number = 0
        assert not db.session.get(Lot, seed['lots'][3]).is_offerable


def test_log_activity_adds_entry(app):
    with app.app_context():
        user = User.query.filter_by(username='admin').first()
        log = log_activity(user, 'UPDATE', 'INVENTORY', 'x' * 600,
                           entity_type='lot', entity_id=12, entity_name='Cotton Poplin',
                           old_values={'quantity': '1'}, new_values={'quantity': '2'})
        db.session.commit()

        stored = db.session.get(ActivityLog, log.id)
        assert len(stored.description) == 500
        assert stored.entity_id == '12'
        assert stored.user.username == 'admin'
        assert stored.new_values == {'quantity': '2'}


@pytest.mark.parametrize('action, module, description', [
    ('EXPLODE', 'INVENTORY', 'bad action'),
    ('UPDATE', 'GARDEN', 'bad module'),
    ('UPDATE', 'INVENTORY', ''),
])
def test_log_activity_rejects_bad_input(app, action, module, description):
    with app.app_context():
        user = User.query.filter_by(username='admin').first()
        with pytest.raises(ValueError):
            log_activity(user, action, module, description)
