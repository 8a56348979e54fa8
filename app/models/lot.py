# app/models/lot.py

from datetime import datetime
from decimal import Decimal, InvalidOperation
from app.extensions import db
from sqlalchemy.orm import validates


def _to_decimal(value, label):
    try:
        value = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"{label} must be a number")
    if not value.is_finite():
        raise ValueError(f"{label} must be a number")
    if value < 0:
        raise ValueError(f"{label} cannot be negative")
    return value


class Lot(db.Model):
    """A received batch of a product sitting at one location."""
    __tablename__ = 'product_lots'

    STATUSES = ('active', 'depleted', 'expired', 'inactive')

    id = db.Column(db.Integer, primary_key=True)
    lot_number = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    purchase_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    received_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    expiry_date = db.Column(db.DateTime)
    status = db.Column(db.String(20), nullable=False, default='active', index=True)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=0)
    __mapper_args__ = {
        'version_id_col': version_id
    }

    __table_args__ = (
        db.UniqueConstraint('product_id', 'lot_number', name='unique_lot_number_per_product'),
    )

    @validates('quantity')
    def validate_quantity(self, key, value):
        return _to_decimal(value, "Quantity")

    @validates('purchase_price', 'selling_price')
    def validate_price(self, key, value):
        return _to_decimal(value, key.replace('_', ' ').capitalize())

    @validates('status')
    def validate_status(self, key, value):
        if value not in self.STATUSES:
            raise ValueError("Invalid lot status")
        return value

    @validates('lot_number')
    def validate_lot_number(self, key, value):
        if value is None or int(value) < 1:
            raise ValueError("Lot number must be a positive integer")
        return int(value)

    @property
    def is_offerable(self):
        return self.status == 'active' and self.quantity > 0

    def consume(self, quantity):
        """Take ``quantity`` out of this lot; never lets it drop below zero."""
        quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if quantity.normalize().as_tuple().exponent < -2:
            raise ValueError("Quantity can have at most two decimal places")
        if quantity > self.quantity:
            raise ValueError(
                f"Lot {self.lot_number} only holds {self.quantity}"
            )
        self.quantity = self.quantity - quantity

    def __repr__(self):
        return f'<Lot {self.product_id}#{self.lot_number}>'
