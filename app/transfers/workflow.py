# app/transfers/workflow.py
"""Three step stock transfer wizard.

The workflow owns the in-progress transfer request for one product:

    LOT_SELECTION -> TRANSFER_DETAILS -> CONFIRMATION -> (submit) -> CLOSED

Each forward move is guarded by a validator; moving back keeps whatever
was entered. Catalog lookups, the permission check and the submission
itself go through collaborators passed in by the host, so the class has
no knowledge of Flask or the database.
"""

import enum
import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation

from app.transfers.errors import (
    ValidationError, PermissionDenied, TransportError,
    SubmissionInProgress, InvalidTransition
)
from app.transfers.records import LotRecord, TransferCommand, Cancelled, Submitted, Failed

logger = logging.getLogger(__name__)

GENERIC_FAILURE = 'Failed to create transfer. Please try again.'
NO_LOTS_NOTICE = 'No active lots available for this product.'


class Step(enum.Enum):
    LOT_SELECTION = 'lot_selection'
    TRANSFER_DETAILS = 'transfer_details'
    CONFIRMATION = 'confirmation'
    CLOSED = 'closed'


def format_quantity(value):
    return '{:f}'.format(Decimal(value).normalize())


def parse_quantity(text):
    """Return the quantity as a positive Decimal or None if it isn't one."""
    try:
        value = Decimal(str(text).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


class TransferWorkflow:

    def __init__(self, product, actor, lot_catalog, location_catalog,
                 permission_gate, transfer_service, clock=None):
        self.product = product
        self.actor = actor
        self.lot_catalog = lot_catalog
        self.location_catalog = location_catalog
        self.permission_gate = permission_gate
        self.transfer_service = transfer_service
        self.clock = clock or datetime.utcnow

        self.lots = []
        self.locations = []
        self.lot_warning = None
        self.lot_notice = None
        self.location_warning = None
        self.pending = False
        self.open()

    # -- lifecycle ---------------------------------------------------------

    def open(self):
        """Reset every field to its entry default and go to step one."""
        self.step = Step.LOT_SELECTION
        self.selected_lot = None
        self.quantity = ''
        self.source_location_id = self.product.default_location_id
        self.source_location_name = self.product.default_location_name
        self.destination_location_id = None
        self.destination_location_name = ''
        self.notes = ''
        self.transfer_date = self.clock()
        self.pending = False
        # Idempotency key: one persisted transfer per opened workflow
        self.request_id = uuid.uuid4().hex

    @property
    def is_closed(self):
        return self.step is Step.CLOSED

    def cancel(self):
        if self.is_closed:
            raise InvalidTransition('Transfer is already closed.')
        self.open()
        self.step = Step.CLOSED
        return Cancelled()

    # -- catalogs ----------------------------------------------------------

    def load_lots(self):
        self.lot_warning = None
        self.lot_notice = None
        try:
            fetched = self.lot_catalog.fetch_lots(
                self.product.id, self.actor.accessible_location_ids
            )
        except TransportError as e:
            logger.warning(f'Could not load lots for product {self.product.id}: {e.message}')
            self.lots = []
            self.lot_warning = 'Failed to fetch product lots. Close and reopen to retry.'
            return self.lots

        allowed = self.actor.accessible_location_ids
        self.lots = sorted(
            (lot for lot in fetched
             if lot.product_id == self.product.id
             and lot.is_offerable
             and (allowed is None or lot.location_id in allowed)),
            key=lambda lot: lot.lot_number
        )
        if not self.lots:
            self.lot_notice = NO_LOTS_NOTICE
        return self.lots

    def load_locations(self):
        self.location_warning = None
        try:
            self.locations = [
                location for location in self.location_catalog.fetch_active_locations()
                if location.status == 'active'
            ]
        except TransportError as e:
            logger.error(f'Could not load locations: {e.message}')
            self.locations = []
            self.location_warning = 'Failed to load locations. No destinations are available right now.'
        return self.locations

    def destination_choices(self, search=''):
        """Active locations other than the source, filtered by name."""
        needle = (search or '').strip().lower()
        return [
            location for location in self.locations
            if location.id != self.source_location_id
            and needle in location.name.lower()
        ]

    # -- input -------------------------------------------------------------

    def select_lot(self, lot):
        """Pick a lot; the transfer source always follows the lot's location."""
        self.selected_lot = lot
        if lot is not None:
            self.source_location_id = lot.location_id
            self.source_location_name = lot.location_name

    def select_lot_by_id(self, lot_id):
        lot = next((lot for lot in self.lots if lot.id == lot_id), None)
        if lot is None:
            self.selected_lot = None
        else:
            self.select_lot(lot)
        return lot

    def set_quantity(self, text):
        self.quantity = '' if text is None else str(text).strip()

    def set_destination(self, location_id):
        if location_id in (None, ''):
            self.destination_location_id = None
            self.destination_location_name = ''
            return
        location_id = int(location_id)
        location = next((loc for loc in self.locations if loc.id == location_id), None)
        self.destination_location_id = location_id
        self.destination_location_name = location.name if location else ''

    def set_notes(self, text):
        self.notes = (text or '').strip()

    # -- validation --------------------------------------------------------

    def validate_lot_step(self):
        if self.selected_lot is None:
            raise ValidationError('selectedLot required', 'selected_lot',
                                  'Please select a lot to transfer from.')
        if self.quantity == '':
            raise ValidationError('quantity required', 'quantity',
                                  'Please enter a quantity.')
        quantity = parse_quantity(self.quantity)
        if quantity is None:
            raise ValidationError('quantity invalid', 'quantity',
                                  'Quantity must be a positive number.')
        if quantity.normalize().as_tuple().exponent < -2:
            raise ValidationError('quantity invalid', 'quantity',
                                  'Quantity can have at most two decimal places.')
        if quantity > self.selected_lot.quantity:
            raise ValidationError(
                'quantity exceeds lot', 'quantity',
                f'Lot {self.selected_lot.lot_number} only has '
                f'{format_quantity(self.selected_lot.quantity)} available.'
            )
        if quantity > self.product.total_stock:
            raise ValidationError(
                'quantity exceeds total stock', 'quantity',
                f'Only {format_quantity(self.product.total_stock)} of '
                f'{self.product.name} is in stock.'
            )
        return quantity

    def validate_details_step(self):
        if self.source_location_id in (None, ''):
            raise ValidationError('source required', 'source_location',
                                  'Source location is required.')
        if self.destination_location_id in (None, ''):
            raise ValidationError('destination required', 'destination_location',
                                  'Please select a destination location.')
        if str(self.destination_location_id) == str(self.source_location_id):
            raise ValidationError('same location', 'destination_location',
                                  'Source and destination locations cannot be the same.')

    # -- navigation --------------------------------------------------------

    def next(self):
        if self.step is Step.LOT_SELECTION:
            self.validate_lot_step()
            self.step = Step.TRANSFER_DETAILS
        elif self.step is Step.TRANSFER_DETAILS:
            self.validate_details_step()
            self.step = Step.CONFIRMATION
        else:
            raise InvalidTransition(f'Cannot move forward from {self.step.value}.')
        return self.step

    def back(self):
        if self.step is Step.TRANSFER_DETAILS:
            self.step = Step.LOT_SELECTION
        elif self.step is Step.CONFIRMATION:
            self.step = Step.TRANSFER_DETAILS
        else:
            raise InvalidTransition(f'Cannot move back from {self.step.value}.')
        return self.step

    # -- submission --------------------------------------------------------

    def build_command(self):
        return TransferCommand(
            product_id=self.product.id,
            from_location_id=self.source_location_id,
            to_location_id=self.destination_location_id,
            quantity=parse_quantity(self.quantity),
            selected_lot_id=self.selected_lot.id,
            notes=self.notes or None,
            transfer_date=self.clock(),
            request_id=self.request_id,
        )

    def submit(self):
        if self.step is not Step.CONFIRMATION:
            return Failed(InvalidTransition('Review the transfer before submitting it.'))
        if self.pending:
            return Failed(SubmissionInProgress('A transfer is already being submitted.'))

        try:
            quantity = self.validate_lot_step()
            self.validate_details_step()
        except ValidationError as e:
            return Failed(e)

        if self.actor.is_location_scoped and \
                not self.permission_gate.can_transfer_from(self.source_location_id):
            logger.warning(
                f'User {self.actor.id} denied transfer from location {self.source_location_id}'
            )
            return Failed(PermissionDenied(
                f'You do not have permission to transfer from {self.source_location_name}.'
            ))

        command = self.build_command()
        self.pending = True
        try:
            result = self.transfer_service.submit_transfer(command, self.actor.id)
        except TransportError as e:
            return Failed(e)
        finally:
            self.pending = False

        if not result or not result.get('success'):
            error = (result or {}).get('error') or GENERIC_FAILURE
            return Failed(TransportError(error))

        summary = (
            f'Transferred {format_quantity(quantity)} of {self.product.name} '
            f'from {self.source_location_name} to {self.destination_location_name}. '
            f'A new lot has been created at {self.destination_location_name}.'
        )
        logger.info(summary)
        self.open()
        self.step = Step.CLOSED
        return Submitted(result.get('data'), summary)

    # -- persistence between requests ------------------------------------

    def to_state(self):
        return {
            'step': self.step.value,
            'selected_lot': self.selected_lot.to_dict() if self.selected_lot else None,
            'quantity': self.quantity,
            'source_location_id': self.source_location_id,
            'source_location_name': self.source_location_name,
            'destination_location_id': self.destination_location_id,
            'destination_location_name': self.destination_location_name,
            'notes': self.notes,
            'transfer_date': self.transfer_date.isoformat() if self.transfer_date else None,
            'request_id': self.request_id,
        }

    def restore(self, state):
        self.step = Step(state.get('step', Step.LOT_SELECTION.value))
        lot = state.get('selected_lot')
        self.selected_lot = LotRecord.from_dict(lot) if lot else None
        self.quantity = state.get('quantity', '')
        self.source_location_id = state.get('source_location_id')
        self.source_location_name = state.get('source_location_name', '')
        self.destination_location_id = state.get('destination_location_id')
        self.destination_location_name = state.get('destination_location_name', '')
        self.notes = state.get('notes', '')
        if state.get('transfer_date'):
            self.transfer_date = datetime.fromisoformat(state['transfer_date'])
        self.request_id = state.get('request_id') or self.request_id
        return self
