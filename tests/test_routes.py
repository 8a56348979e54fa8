from decimal import Decimal

from app.extensions import db
from app.models import Lot, StockTransfer, ActivityLog
from app.transfers.exports import MIMETYPES


def wizard_urls(seed):
    base = f"/transfers/product/{seed['product']}"
    return {step: f'{base}/{step}' for step in ('start', 'lot', 'details', 'confirm', 'cancel')}


def run_wizard(client, seed, lot=1, quantity='30', destination='gulshan', notes='Showroom restock'):
    urls = wizard_urls(seed)
    client.get(urls['start'])
    client.post(urls['lot'], data={'lot_id': seed['lots'][lot], 'quantity': quantity, 'next': 'Next'})
    client.post(urls['details'], data={
        'destination_location_id': seed[destination],
        'notes': notes,
        'next': 'Next'
    })
    return client.post(urls['confirm'], data={'submit': 'Confirm Transfer'}, follow_redirects=True)


def test_index_page(client):
    response = client.get('/')
    assert response.status_code == 200
    assert b'Textile Inventory' in response.data


def test_login_required(client, seed):
    """Test that protected pages require login."""
    protected_routes = [
        '/dashboard',
        '/logs',
        f"/product/{seed['product']}/lots",
        '/transfers/',
        f"/transfers/product/{seed['product']}/start",
    ]
    for route in protected_routes:
        response = client.get(route)
        assert response.status_code == 302
        assert '/auth/login' in response.location


def test_login_and_logout_are_logged(client, app):
    response = client.post('/auth/login', data={'login': 'admin', 'password': 'secret'})
    assert response.status_code == 302
    assert '/dashboard' in response.location
    client.get('/auth/logout')

    with app.app_context():
        actions = [log.action for log in ActivityLog.query.order_by(ActivityLog.id)]
    assert actions == ['LOGIN', 'LOGOUT']


def test_login_with_email(client):
    response = client.post('/auth/login', data={'login': 'Admin@Test.com', 'password': 'secret'})
    assert response.status_code == 302
    assert '/dashboard' in response.location


def test_login_rejects_bad_password(client):
    response = client.post('/auth/login', data={'login': 'admin', 'password': 'nope'})
    assert b'Invalid username or password' in response.data


def test_login_rejects_inactive_user(client, app):
    with app.app_context():
        from app.models import User
        User.query.filter_by(username='sales').first().is_active = False
        db.session.commit()
    response = client.post('/auth/login', data={'login': 'sales', 'password': 'secret'})
    assert b'deactivated' in response.data


def test_dashboard_lists_products(admin_client):
    response = admin_client.get('/dashboard?q=poplin')
    assert response.status_code == 200
    assert b'Cotton Poplin' in response.data
    assert b'CTN-001' in response.data

    response = admin_client.get('/dashboard?q=silk')
    assert b'No products found' in response.data


def test_dashboard_refuses_foreign_location(branch_client, seed):
    response = branch_client.get(f"/dashboard?location={seed['main']}")
    assert response.status_code == 302


def test_product_lots_are_location_scoped(branch_client, seed):
    response = branch_client.get(f"/product/{seed['product']}/lots")
    assert response.status_code == 200
    assert b'Gulshan Showroom' in response.data
    assert b'#1<' not in response.data
    assert b'#2<' in response.data


def test_activity_logs_need_permission(client, login_as):
    login_as('sales')
    assert client.get('/logs').status_code == 403

    login_as('admin')
    response = client.get('/logs?action=LOGIN')
    assert response.status_code == 200
    assert b'User logged in successfully' in response.data


def test_sales_manager_cannot_start_transfer(sales_client, seed):
    response = sales_client.get(wizard_urls(seed)['start'])
    assert response.status_code == 403


def test_full_transfer(admin_client, app, seed):
    response = run_wizard(admin_client, seed)

    assert response.status_code == 200
    assert (b'Transferred 30 of Cotton Poplin from Main Warehouse to Gulshan Showroom. '
            b'A new lot has been created at Gulshan Showroom.') in response.data

    with app.app_context():
        assert db.session.get(Lot, seed['lots'][1]).quantity == Decimal('70')
        transfer = StockTransfer.query.one()
        assert transfer.to_location_id == seed['gulshan']
        assert transfer.notes == 'Showroom restock'
        assert transfer.destination_lot.lot_number == 4

    # The finished workflow is gone; step pages send the user back to start
    response = admin_client.get(wizard_urls(seed)['confirm'])
    assert response.status_code == 302
    assert response.location.endswith(wizard_urls(seed)['start'])


def test_lot_step_rejects_excess_quantity(admin_client, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    response = admin_client.post(urls['lot'], data={
        'lot_id': seed['lots'][2], 'quantity': '45', 'next': 'Next'
    })

    assert response.status_code == 200
    assert b'Lot 2 only has 40 available.' in response.data
    # Still on step one
    assert admin_client.get(urls['details']).location.endswith(urls['lot'])


def test_details_step_rejects_same_location(admin_client, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    admin_client.post(urls['lot'], data={'lot_id': seed['lots'][1], 'quantity': '5', 'next': 'Next'})
    response = admin_client.post(urls['details'], data={
        'destination_location_id': seed['main'], 'next': 'Next'
    })

    assert b'Source and destination locations cannot be the same.' in response.data
    assert admin_client.get(urls['confirm']).location.endswith(urls['details'])


def test_details_step_offers_other_active_locations(admin_client, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    admin_client.post(urls['lot'], data={'lot_id': seed['lots'][1], 'quantity': '5', 'next': 'Next'})

    response = admin_client.get(urls['details'])
    assert b'Gulshan Showroom (showroom)' in response.data
    assert b'Main Warehouse (warehouse)' not in response.data
    assert b'Closed Outlet' not in response.data

    response = admin_client.post(urls['details'], data={'search': 'dhan', 'find': 'Search'})
    assert b'Dhanmondi Showroom (showroom)' in response.data
    assert b'Gulshan Showroom (showroom)' not in response.data


def test_back_keeps_entries(admin_client, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    admin_client.post(urls['lot'], data={'lot_id': seed['lots'][1], 'quantity': '12', 'next': 'Next'})
    admin_client.post(urls['details'], data={'destination_location_id': seed['dhanmondi'], 'next': 'Next'})

    response = admin_client.post(urls['confirm'], data={'back': 'Back'})
    assert response.location.endswith(urls['details'])

    response = admin_client.post(urls['details'], data={'back': 'Back'})
    assert response.location.endswith(urls['lot'])

    response = admin_client.get(urls['lot'])
    assert b'value="12"' in response.data


def test_cancel_discards_workflow(admin_client, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    admin_client.post(urls['lot'], data={'lot_id': seed['lots'][1], 'quantity': '5', 'next': 'Next'})

    response = admin_client.post(urls['cancel'], follow_redirects=True)
    assert b'Transfer cancelled.' in response.data

    response = admin_client.get(urls['details'])
    assert response.location.endswith(urls['start'])


def test_scoped_admin_only_sees_own_lots(branch_client, seed):
    urls = wizard_urls(seed)
    branch_client.get(urls['start'])

    response = branch_client.get(urls['lot'])
    assert b'Lot 2 - 40 at Gulshan Showroom' in response.data
    assert b'Lot 1 - ' not in response.data

    # A lot outside the user's locations cannot be picked by id
    response = branch_client.post(urls['lot'], data={
        'lot_id': seed['lots'][1], 'quantity': '5', 'next': 'Next'
    })
    assert b'Please select a lot to transfer from.' in response.data


def test_scoped_admin_transfers_from_own_location(branch_client, app, seed):
    response = run_wizard(branch_client, seed, lot=2, quantity='15', destination='dhanmondi')
    assert b'Transferred 15 of Cotton Poplin from Gulshan Showroom to Dhanmondi Showroom.' in response.data

    with app.app_context():
        assert db.session.get(Lot, seed['lots'][2]).quantity == Decimal('25')


def test_history_and_filters(admin_client, seed):
    run_wizard(admin_client, seed)

    response = admin_client.get('/transfers/')
    assert response.status_code == 200
    assert b'Showroom restock' in response.data

    response = admin_client.get(f"/transfers/?location={seed['dhanmondi']}")
    assert b'No transfers yet.' in response.data

    response = admin_client.get('/transfers/?q=silk')
    assert b'No transfers yet.' in response.data


def test_history_hides_other_locations(client, login_as, seed):
    login_as('admin')
    run_wizard(client, seed, destination='dhanmondi', notes='Dhanmondi only')
    client.get('/auth/logout')

    login_as('branch')
    response = client.get('/transfers/')
    assert b'Dhanmondi only' not in response.data


def test_export_formats(admin_client, seed):
    run_wizard(admin_client, seed)

    for format in ('xlsx', 'pdf', 'docx'):
        response = admin_client.get(f'/transfers/export/{format}')
        assert response.status_code == 200
        assert response.mimetype == MIMETYPES[format]
        assert f'.{format}' in response.headers['Content-Disposition']
        assert len(response.data) > 0


def test_export_unknown_format(admin_client):
    assert admin_client.get('/transfers/export/csv').status_code == 400


def test_investor_cannot_view_history(client, login_as):
    login_as('investor')
    assert client.get('/transfers/').status_code == 403


def test_lot_step_reports_unreadable_lot_choice(admin_client, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    response = admin_client.post(urls['lot'], data={'lot_id': 'abc', 'quantity': '5', 'next': 'Next'})

    assert response.status_code == 200
    assert b'Lot: Invalid Choice' in response.data
    assert admin_client.get(urls['details']).location.endswith(urls['lot'])


def test_lot_step_rejects_sub_cent_quantity(admin_client, app, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    response = admin_client.post(urls['lot'], data={
        'lot_id': seed['lots'][1], 'quantity': '0.005', 'next': 'Next'
    })

    assert b'Quantity can have at most two decimal places.' in response.data
    with app.app_context():
        assert db.session.get(Lot, seed['lots'][1]).quantity == Decimal('100')


def test_confirm_button_locks_while_submitting(admin_client, seed):
    urls = wizard_urls(seed)
    admin_client.get(urls['start'])
    admin_client.post(urls['lot'], data={'lot_id': seed['lots'][1], 'quantity': '5', 'next': 'Next'})
    admin_client.post(urls['details'], data={'destination_location_id': seed['gulshan'], 'next': 'Next'})

    response = admin_client.get(urls['confirm'])
    assert b'data-pending-text="Submitting..."' in response.data
    assert b'button.disabled = true' in response.data
