# app/transfers/routes.py

from datetime import datetime

from flask import (
    render_template, redirect, url_for, flash, request,
    send_file, session, current_app, abort
)
from flask_login import login_required, current_user
from sqlalchemy.orm import joinedload

from app.transfers import bp
from app.transfers.catalogs import LotCatalog, LocationCatalog
from app.transfers.errors import ValidationError, PermissionDenied, InvalidTransition
from app.transfers.exports import GENERATORS, MIMETYPES, transfer_rows, format_timestamp
from app.transfers.forms import LotStepForm, DetailsStepForm, ConfirmStepForm
from app.transfers.records import ProductRef, Actor, Submitted
from app.transfers.service import TransferService
from app.transfers.workflow import TransferWorkflow, Step
from app.auth.decorators import permission_required
from app.auth.permissions import PermissionGate
from app.models import Product, StockTransfer, Location
from app.extensions import db, limiter
from app.socket_events import notify_inventory_update, notify_stock_alert

SESSION_KEY = 'transfer_workflows'

STEP_ENDPOINTS = {
    Step.LOT_SELECTION: 'transfers.lot_step',
    Step.TRANSFER_DETAILS: 'transfers.details_step',
    Step.CONFIRMATION: 'transfers.confirm_step',
}


#######################################################################
#  WORKFLOW STATE (one open workflow per product, kept in the session)
#######################################################################

def _build_workflow(product):
    return TransferWorkflow(
        product=ProductRef.from_model(product),
        actor=Actor.from_user(current_user),
        lot_catalog=LotCatalog(),
        location_catalog=LocationCatalog(),
        permission_gate=PermissionGate(current_user),
        transfer_service=TransferService()
    )


def _get_product(product_id):
    return Product.query\
        .options(joinedload(Product.location))\
        .filter(Product.id == product_id)\
        .first_or_404()


def _load_workflow(product):
    """Rebuild the product's open workflow, or None if none is open."""
    state = session.get(SESSION_KEY, {}).get(str(product.id))
    if state is None:
        return None
    return _build_workflow(product).restore(state)


def _save_workflow(workflow):
    states = dict(session.get(SESSION_KEY, {}))
    states[str(workflow.product.id)] = workflow.to_state()
    session[SESSION_KEY] = states


def _discard_workflow(product_id):
    states = dict(session.get(SESSION_KEY, {}))
    states.pop(str(product_id), None)
    session[SESSION_KEY] = states


def _redirect_to_step(workflow):
    return redirect(url_for(STEP_ENDPOINTS[workflow.step], product_id=workflow.product.id))


def _open_or_redirect(product, step):
    """Return the workflow when it sits at ``step``, otherwise a redirect."""
    workflow = _load_workflow(product)
    if workflow is None or workflow.is_closed:
        flash('Start a new transfer for this product.', 'info')
        return None, redirect(url_for('transfers.start', product_id=product.id))
    if workflow.step is not step:
        return None, _redirect_to_step(workflow)
    return workflow, None


def _flash_form_errors(form):
    for field, errors in form.errors.items():
        for error in errors:
            flash(f'{getattr(form, field).label.text}: {error}', 'error')


#######################################################################
#  TRANSFER WIZARD
#######################################################################

@bp.route('/product/<int:product_id>/start')
@login_required
@permission_required('inventory', 'transfer')
def start(product_id):
    """Open a fresh transfer workflow for a product."""
    product = _get_product(product_id)
    workflow = _build_workflow(product)
    _save_workflow(workflow)
    return _redirect_to_step(workflow)


@bp.route('/product/<int:product_id>/lot', methods=['GET', 'POST'])
@login_required
@permission_required('inventory', 'transfer')
def lot_step(product_id):
    """Step 1: choose the lot and the quantity."""
    product = _get_product(product_id)
    workflow, response = _open_or_redirect(product, Step.LOT_SELECTION)
    if response:
        return response

    workflow.load_lots()
    form = LotStepForm()
    form.set_lots(workflow.lots)

    if form.validate_on_submit():
        workflow.select_lot_by_id(form.lot_id.data)
        workflow.set_quantity(form.quantity.data)
        try:
            workflow.next()
        except ValidationError as e:
            flash(e.message, 'error')
        _save_workflow(workflow)
        if workflow.step is not Step.LOT_SELECTION:
            return _redirect_to_step(workflow)
    elif form.is_submitted():
        _flash_form_errors(form)
    else:
        form.lot_id.data = workflow.selected_lot.id if workflow.selected_lot else None
        form.quantity.data = workflow.quantity

    return render_template('transfers/lot_step.html', title='Transfer Stock',
                           form=form, workflow=workflow, product=product)


@bp.route('/product/<int:product_id>/details', methods=['GET', 'POST'])
@login_required
@permission_required('inventory', 'transfer')
def details_step(product_id):
    """Step 2: choose the destination and add notes."""
    product = _get_product(product_id)
    workflow, response = _open_or_redirect(product, Step.TRANSFER_DETAILS)
    if response:
        return response

    workflow.load_locations()
    form = DetailsStepForm()
    search = form.search.data if form.is_submitted() else request.args.get('q', '')
    form.set_destinations(workflow.destination_choices(search))

    if form.validate_on_submit():
        workflow.set_destination(form.destination_location_id.data)
        workflow.set_notes(form.notes.data)
        if form.back.data:
            workflow.back()
        elif not form.find.data:
            try:
                workflow.next()
            except ValidationError as e:
                flash(e.message, 'error')
        _save_workflow(workflow)
        if workflow.step is not Step.TRANSFER_DETAILS:
            return _redirect_to_step(workflow)
    elif form.is_submitted():
        _flash_form_errors(form)
    else:
        form.destination_location_id.data = workflow.destination_location_id
        form.notes.data = workflow.notes

    return render_template('transfers/details_step.html', title='Transfer Stock',
                           form=form, workflow=workflow, product=product)


@bp.route('/product/<int:product_id>/confirm', methods=['GET', 'POST'])
@login_required
@permission_required('inventory', 'transfer')
@limiter.limit("30 per hour", methods=['POST'])
def confirm_step(product_id):
    """Step 3: review and submit the transfer."""
    product = _get_product(product_id)
    workflow, response = _open_or_redirect(product, Step.CONFIRMATION)
    if response:
        return response

    form = ConfirmStepForm()
    if form.validate_on_submit():
        if form.back.data:
            workflow.back()
            _save_workflow(workflow)
            return _redirect_to_step(workflow)

        outcome = workflow.submit()
        if isinstance(outcome, Submitted):
            _discard_workflow(product.id)
            notify_inventory_update(product.id, 'transfer', outcome.record)
            db.session.refresh(product)
            level = product.check_stock_level()
            if level != 'ok':
                notify_stock_alert(product, level)
            flash(outcome.message, 'success')
            return redirect(url_for('main.product_lots', product_id=product.id))

        category = 'warning' if isinstance(outcome.error, PermissionDenied) else 'error'
        flash(outcome.message, category)

    return render_template('transfers/confirm_step.html', title='Confirm Transfer',
                           form=form, workflow=workflow, product=product)


@bp.route('/product/<int:product_id>/cancel', methods=['POST'])
@login_required
def cancel(product_id):
    """Close the product's transfer workflow and drop what was entered."""
    product = _get_product(product_id)
    workflow = _load_workflow(product)
    if workflow is not None:
        try:
            workflow.cancel()
        except InvalidTransition:
            pass
    _discard_workflow(product.id)
    flash('Transfer cancelled.', 'info')
    return redirect(url_for('main.product_lots', product_id=product.id))


#######################################################################
#  TRANSFER HISTORY
#######################################################################

def _filtered_transfers():
    """Transfers visible to the current user, narrowed by query args."""
    query = StockTransfer.query.options(
        joinedload(StockTransfer.product),
        joinedload(StockTransfer.from_location),
        joinedload(StockTransfer.to_location),
        joinedload(StockTransfer.source_lot),
        joinedload(StockTransfer.destination_lot),
        joinedload(StockTransfer.requester),
    )

    allowed = current_user.accessible_location_ids()
    if allowed:
        query = query.filter(db.or_(
            StockTransfer.from_location_id.in_(allowed),
            StockTransfer.to_location_id.in_(allowed)
        ))

    status = request.args.get('status')
    if status:
        query = query.filter(StockTransfer.status == status)

    location_id = request.args.get('location', type=int)
    if location_id:
        query = query.filter(db.or_(
            StockTransfer.from_location_id == location_id,
            StockTransfer.to_location_id == location_id
        ))

    search = request.args.get('q', '').strip()
    if search:
        query = query.join(Product, StockTransfer.product_id == Product.id)\
            .filter(db.or_(
                Product.name.ilike(f'%{search}%'),
                Product.product_code.ilike(f'%{search}%')
            ))

    return query.order_by(StockTransfer.transfer_date.desc(), StockTransfer.id.desc())


@bp.route('/')
@login_required
@permission_required('transfers', 'view')
def history():
    """List completed transfers."""
    page = request.args.get('page', 1, type=int)
    transfers = _filtered_transfers().paginate(
        page=page,
        per_page=current_app.config['TRANSFER_HISTORY_PER_PAGE'],
        error_out=False
    )
    return render_template('transfers/history.html', title='Transfers',
                           transfers=transfers,
                           locations=Location.query.order_by(Location.name).all())


@bp.route('/export/<format>')
@login_required
@permission_required('reports', 'export')
@limiter.limit("10 per minute")
def export_history(format):
    """Download the filtered transfer history as xlsx, pdf or docx."""
    generator = GENERATORS.get(format)
    if generator is None:
        abort(400, description='Format not supported')

    rows = transfer_rows(_filtered_transfers().all())
    timestamp = format_timestamp(datetime.utcnow()).strftime('%Y%m%d_%H%M%S')
    current_app.logger.info(f'{current_user.username} exported {len(rows)} transfers as {format}')
    return send_file(
        generator(rows),
        mimetype=MIMETYPES[format],
        as_attachment=True,
        download_name=f'transfers_{timestamp}.{format}'
    )
