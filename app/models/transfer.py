# app/models/transfer.py

from datetime import datetime
from app.extensions import db


class StockTransfer(db.Model):
    __tablename__ = 'transfers'

    id = db.Column(db.Integer, primary_key=True)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    transfer_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='completed')
    notes = db.Column(db.Text)
    request_id = db.Column(db.String(32), unique=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    from_location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False)
    to_location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False)
    source_lot_id = db.Column(db.Integer, db.ForeignKey('product_lots.id'), nullable=False)
    destination_lot_id = db.Column(db.Integer, db.ForeignKey('product_lots.id'))
    requested_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)

    product = db.relationship('Product')
    from_location = db.relationship('Location', foreign_keys=[from_location_id])
    to_location = db.relationship('Location', foreign_keys=[to_location_id])
    source_lot = db.relationship('Lot', foreign_keys=[source_lot_id])
    destination_lot = db.relationship('Lot', foreign_keys=[destination_lot_id])
    requester = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name': self.product.name if self.product else None,
            'from_location_id': self.from_location_id,
            'from_location_name': self.from_location.name if self.from_location else None,
            'to_location_id': self.to_location_id,
            'to_location_name': self.to_location.name if self.to_location else None,
            'quantity': str(self.quantity),
            'source_lot_id': self.source_lot_id,
            'destination_lot_id': self.destination_lot_id,
            'destination_lot_number': self.destination_lot.lot_number if self.destination_lot else None,
            'transfer_date': self.transfer_date.isoformat() if self.transfer_date else None,
            'status': self.status,
            'notes': self.notes,
            'requested_by': self.requested_by,
        }

    def __repr__(self):
        return f'<StockTransfer {self.id} {self.from_location_id}->{self.to_location_id}>'
