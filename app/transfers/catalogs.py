# app/transfers/catalogs.py

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from app.extensions import db
from app.models import Lot, Location
from app.transfers.errors import TransportError
from app.transfers.records import LotRecord, LocationRecord


class LotCatalog:
    """Read-only view of the lots a product can be transferred from."""

    def fetch_lots(self, product_id, accessible_location_ids=None):
        query = Lot.query\
            .options(joinedload(Lot.location))\
            .filter(
                Lot.product_id == product_id,
                Lot.status == 'active',
                Lot.quantity > 0
            )
        if accessible_location_ids is not None:
            query = query.filter(Lot.location_id.in_(accessible_location_ids))

        try:
            lots = query.order_by(Lot.lot_number.asc()).all()
        except SQLAlchemyError as e:
            current_app.logger.exception(f'Error fetching lots for product {product_id}: {e}')
            db.session.rollback()
            raise TransportError('Failed to fetch product lots') from e

        return [LotRecord.from_model(lot) for lot in lots]


class LocationCatalog:
    """Read-only view of the locations stock can be moved to."""

    def fetch_active_locations(self):
        try:
            locations = self._active_locations()
        except SQLAlchemyError as e:
            current_app.logger.error(f'Active location query failed, trying full listing: {e}')
            db.session.rollback()
            try:
                locations = [loc for loc in self._all_locations() if loc.status == 'active']
            except SQLAlchemyError as e2:
                current_app.logger.exception(f'Location listing failed: {e2}')
                db.session.rollback()
                raise TransportError('Failed to load locations') from e2

        return [LocationRecord.from_model(location) for location in locations]

    def _active_locations(self):
        return Location.query.filter_by(status='active').order_by(Location.name).all()

    def _all_locations(self):
        return Location.query.order_by(Location.name).all()
