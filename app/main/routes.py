# app/main/routes.py

from flask import render_template, redirect, url_for, flash, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.orm import joinedload

from app.main import bp
from app.auth.decorators import permission_required
from app.auth.permissions import PermissionGate
from app.models import Product, Lot, Location, ActivityLog, User
from app.extensions import db, limiter


@bp.route('/')
@bp.route('/index')
def index():
    """Render the home page."""
    return render_template('main/index.html', title='Home')


@bp.route('/dashboard')
@login_required
@limiter.limit("60 per minute")
def dashboard():
    """Product list with stock levels, searchable and filterable by location."""
    if Location.query.count() == 0:
        Location.get_predefined_locations()

    locations = Location.query.order_by(Location.name).all()
    query = request.args.get('q', '').strip()
    location_id = request.args.get('location', type=int)
    page = request.args.get('page', 1, type=int)

    if location_id and not current_user.can_access_location(location_id):
        flash('You do not have access to that location.', 'warning')
        return redirect(url_for('main.dashboard'))

    products = Product.search(
        query,
        location_id=location_id,
        page=page,
        per_page=current_app.config['PRODUCTS_PER_PAGE']
    )

    return render_template(
        'main/dashboard.html',
        title='Dashboard',
        products=products,
        locations=locations,
        selected_location_id=location_id,
        query=query,
        can_transfer=PermissionGate(current_user).has_permission('inventory', 'transfer')
    )


@bp.route('/product/<int:product_id>/lots')
@login_required
def product_lots(product_id):
    """Lots of one product, limited to the locations the user may see."""
    product = Product.query.options(joinedload(Product.location))\
        .filter(Product.id == product_id).first_or_404()

    lots = product.lots.options(joinedload(Lot.location))
    allowed = current_user.accessible_location_ids()
    if allowed:
        lots = lots.filter(Lot.location_id.in_(allowed))

    return render_template(
        'main/product_lots.html',
        title=product.name,
        product=product,
        lots=lots.all(),
        stock_level=product.check_stock_level(),
        can_transfer=PermissionGate(current_user).has_permission('inventory', 'transfer')
    )


#######################################################################
# ACTIVITY LOGS
#######################################################################

@bp.route('/logs')
@login_required
@permission_required('activitylogs')
def activity_logs():
    """List user activity, newest first."""
    page = request.args.get('page', 1, type=int)
    action = request.args.get('action', '')
    module = request.args.get('module', '')
    user_id = request.args.get('user', type=int)
    search = request.args.get('q', '').strip()

    logs = ActivityLog.query
    if action:
        logs = logs.filter(ActivityLog.action == action)
    if module:
        logs = logs.filter(ActivityLog.module == module)
    if user_id:
        logs = logs.filter(ActivityLog.user_id == user_id)
    if search:
        pattern = f'%{search}%'
        logs = logs.filter(db.or_(
            ActivityLog.description.ilike(pattern),
            ActivityLog.entity_name.ilike(pattern)
        ))

    logs = logs.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).paginate(
        page=page,
        per_page=current_app.config['ACTIVITY_LOGS_PER_PAGE'],
        error_out=False
    )
    return render_template(
        'main/activity_logs.html',
        title='Activity Logs',
        logs=logs,
        actions=ActivityLog.ACTIONS,
        modules=ActivityLog.MODULES,
        users=User.query.order_by(User.username).all()
    )
