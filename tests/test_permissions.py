import pytest
from app.auth.permissions import PermissionGate, normalize_action
from app.extensions import db
from app.models import User, Location


def gate_for(username):
    return PermissionGate(User.query.filter_by(username=username).first())


def test_super_admin_has_every_permission(app, seed):
    with app.app_context():
        gate = gate_for('superadmin')
        assert not gate.is_location_scoped
        assert gate.has_permission('inventory', 'transfer')
        assert gate.has_permission('anything', 'delete')
        assert gate.can_transfer_from(seed['closed'])


@pytest.mark.parametrize('username, module, action, expected', [
    ('admin', 'inventory', 'transfer', True),
    ('admin', 'activitylogs', 'view', True),
    ('admin', 'products', 'delete', False),
    ('sales', 'inventory', 'view', True),
    ('sales', 'inventory', 'transfer', False),
    ('sales', 'reports', 'export', True),
    ('investor', 'dashboard', 'view', True),
    ('investor', 'inventory', 'view', False),
    ('investor', 'reports', 'export', False),
])
def test_role_defaults(app, username, module, action, expected):
    with app.app_context():
        assert gate_for(username).has_permission(module, action) is expected


def test_action_aliases():
    assert normalize_action('read') == 'view'
    assert normalize_action('UPDATE') == 'edit'
    assert normalize_action(None) == 'view'


def test_alias_is_accepted_by_gate(app):
    with app.app_context():
        assert gate_for('admin').has_permission('Products', 'update')


def test_location_scope(app, seed):
    """An admin tied to Gulshan may only transfer out of Gulshan."""
    with app.app_context():
        gate = gate_for('branch')
        assert gate.is_location_scoped
        assert gate.can_transfer_from(seed['gulshan'])
        assert gate.can_transfer_from(str(seed['gulshan']))
        assert not gate.can_transfer_from(seed['main'])


def test_admin_without_locations_is_unrestricted(app, seed):
    with app.app_context():
        user = User.query.filter_by(username='admin').first()
        assert user.accessible_location_ids() is None
        assert PermissionGate(user).can_transfer_from(seed['dhanmondi'])


def test_overrides_grant_and_revoke(app):
    with app.app_context():
        investor = User.query.filter_by(username='investor').first()
        investor.permissions = {'inventory': {'view': True}, 'dashboard': False}
        db.session.commit()

        gate = PermissionGate(investor)
        assert gate.has_permission('inventory', 'read')
        assert not gate.has_permission('dashboard')


def test_sales_manager_can_never_transfer(app):
    with app.app_context():
        sales = User.query.filter_by(username='sales').first()
        sales.permissions = {'inventory': True}
        db.session.commit()

        gate = PermissionGate(sales)
        assert gate.has_permission('inventory', 'edit')
        assert not gate.has_permission('inventory', 'transfer')


def test_inactive_user_has_no_permissions(app):
    with app.app_context():
        admin = User.query.filter_by(username='superadmin').first()
        admin.is_active = False
        db.session.commit()
        assert not PermissionGate(admin).has_permission('dashboard')


def test_missing_user_has_no_permissions():
    assert not PermissionGate(None).has_permission('dashboard')


def test_user_accessible_locations(app, seed):
    with app.app_context():
        branch = User.query.filter_by(username='branch').first()
        assert branch.accessible_location_ids() == [seed['gulshan']]
        branch.locations.append(db.session.get(Location, seed['main']))
        db.session.commit()
        assert branch.accessible_location_ids() == sorted([seed['gulshan'], seed['main']])
        assert not branch.can_access_location('not-a-number')
