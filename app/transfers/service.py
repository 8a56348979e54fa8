# app/transfers/service.py

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.activity import log_activity
from app.extensions import db
from app.models import Lot, Location, Product, StockTransfer, User


class TransferService:
    """Persists a confirmed transfer.

    Moving stock decrements the source lot and opens a new lot at the
    destination carrying the source lot's prices and expiry. The transfer
    record and both activity log entries are written in the same
    transaction.
    """

    def submit_transfer(self, command, acting_user_id):
        try:
            transfer = self._apply(command, acting_user_id)
            db.session.commit()
        except ValueError as ve:
            db.session.rollback()
            current_app.logger.warning(f'Transfer rejected: {ve}')
            return {'success': False, 'error': str(ve)}
        except StaleDataError:
            db.session.rollback()
            return {'success': False,
                    'error': 'The lot was modified by another user. Please try again.'}
        except IntegrityError as e:
            db.session.rollback()
            current_app.logger.error(f'Integrity error during transfer: {e}')
            return {'success': False, 'error': 'This transfer has already been submitted.'}
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(f'DB error during transfer: {e}')
            return {'success': False, 'error': 'Database error during transfer. Please try again.'}

        current_app.logger.info(
            f'Transfer {transfer.id}: {transfer.quantity} of product {transfer.product_id} '
            f'from location {transfer.from_location_id} to {transfer.to_location_id} '
            f'by user {acting_user_id}'
        )
        return {'success': True, 'data': transfer.to_dict()}

    def _apply(self, command, acting_user_id):
        user = db.session.get(User, acting_user_id)
        if user is None:
            raise ValueError('User not authenticated')

        if command.request_id and \
                StockTransfer.query.filter_by(request_id=command.request_id).first():
            raise ValueError('This transfer has already been submitted.')

        quantity = Decimal(str(command.quantity))
        if quantity <= 0:
            raise ValueError('Transfer quantity must be positive!')
        if quantity.normalize().as_tuple().exponent < -2:
            raise ValueError('Transfer quantity can have at most two decimal places.')

        product = db.session.get(Product, command.product_id)
        if product is None:
            raise ValueError('Product not found.')

        source_lot = Lot.query\
            .filter_by(id=command.selected_lot_id)\
            .with_for_update()\
            .first()
        if source_lot is None or source_lot.product_id != product.id:
            raise ValueError('Selected lot does not belong to this product.')
        if source_lot.status != 'active':
            raise ValueError(f'Lot {source_lot.lot_number} is not active.')
        if source_lot.location_id != command.from_location_id:
            raise ValueError('Selected lot is not stored at the source location.')

        source = db.session.get(Location, command.from_location_id)
        destination = db.session.get(Location, command.to_location_id)
        if source is None or destination is None:
            raise ValueError('Invalid source or destination location.')
        if source.id == destination.id:
            raise ValueError('Source and destination locations cannot be the same.')
        if not destination.is_active():
            raise ValueError(f'{destination.name} is not an active location.')

        if quantity > source_lot.quantity:
            raise ValueError('Transfer quantity cannot exceed available lot quantity!')

        transfer_date = command.transfer_date or datetime.utcnow()

        source_lot.consume(quantity)
        if source_lot.quantity == 0:
            source_lot.status = 'depleted'

        destination_lot = Lot(
            product_id=product.id,
            lot_number=product.next_lot_number(),
            quantity=quantity,
            purchase_price=source_lot.purchase_price,
            selling_price=source_lot.selling_price,
            location_id=destination.id,
            received_date=transfer_date,
            expiry_date=source_lot.expiry_date,
            status='active',
            notes=f'Transferred from lot #{source_lot.lot_number} at {source.name}'
        )
        db.session.add(destination_lot)
        db.session.flush()

        transfer = StockTransfer(
            product_id=product.id,
            from_location_id=source.id,
            to_location_id=destination.id,
            quantity=quantity,
            source_lot_id=source_lot.id,
            destination_lot_id=destination_lot.id,
            transfer_date=transfer_date,
            notes=command.notes,
            request_id=command.request_id,
            status='completed',
            requested_by=user.id
        )
        db.session.add(transfer)
        db.session.flush()

        log_activity(
            user, 'TRANSFER', 'TRANSFERS',
            f'Transferred {quantity} {product.unit} of {product.name} '
            f'from {source.name} to {destination.name}',
            entity_type='transfer',
            entity_id=transfer.id,
            entity_name=product.name,
            old_values={'lot_id': source_lot.id,
                        'quantity': str(source_lot.quantity + quantity)},
            new_values={'lot_id': source_lot.id,
                        'quantity': str(source_lot.quantity)}
        )
        log_activity(
            user, 'CREATE', 'INVENTORY',
            f'Lot #{destination_lot.lot_number} of {product.name} received at '
            f'{destination.name} ({quantity} {product.unit})',
            entity_type='lot',
            entity_id=destination_lot.id,
            entity_name=product.name,
            new_values={'lot_number': destination_lot.lot_number,
                        'location_id': destination.id,
                        'quantity': str(quantity)}
        )
        return transfer
