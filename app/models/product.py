# app/models/product.py

from datetime import datetime
from decimal import Decimal
from app.extensions import db
from sqlalchemy.orm import validates, joinedload
from sqlalchemy import func


class Product(db.Model):
    __tablename__ = 'products'

    UNITS = ('meter', 'yard', 'piece', 'roll')

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    product_code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    category = db.Column(db.String(50))
    unit = db.Column(db.String(20), nullable=False, default='meter')
    minimum_stock = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Nominal home of the product; individual lots may sit elsewhere
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False)
    location = db.relationship('Location')

    lots = db.relationship('Lot', backref='product', lazy='dynamic',
                           order_by='Lot.lot_number')

    @validates('product_code')
    def validate_product_code(self, key, value):
        if not value or not value.strip():
            raise ValueError("Product code cannot be empty")
        return value.strip().upper()

    @validates('unit')
    def validate_unit(self, key, value):
        if value not in self.UNITS:
            raise ValueError("Invalid unit")
        return value

    @validates('minimum_stock')
    def validate_minimum_stock(self, key, value):
        try:
            value = Decimal(str(value))
        except ArithmeticError:
            raise ValueError("Minimum stock must be a number")
        if value < 0:
            raise ValueError("Minimum stock cannot be negative")
        return value

    @property
    def total_stock(self):
        """Sum of the remaining quantity across active lots."""
        from app.models.lot import Lot
        total = db.session.query(func.coalesce(func.sum(Lot.quantity), 0))\
            .filter(Lot.product_id == self.id, Lot.status == 'active')\
            .scalar()
        return Decimal(str(total))

    def next_lot_number(self):
        """Lot numbers run sequentially per product, starting at 1."""
        from app.models.lot import Lot
        current = db.session.query(func.max(Lot.lot_number))\
            .filter(Lot.product_id == self.id)\
            .scalar()
        return (current or 0) + 1

    def check_stock_level(self):
        """
        Returns:
            - 'out' if there is no stock left
            - 'low' if total stock <= minimum_stock
            - 'ok' otherwise
        """
        total = self.total_stock
        if total == 0:
            return 'out'
        elif total <= (self.minimum_stock or 0):
            return 'low'
        return 'ok'

    @classmethod
    def search(cls, query, location_id=None, page=1, per_page=20):
        """Search products by name or code, optionally by home location."""
        base_query = cls.query.options(joinedload(cls.location))
        if query:
            pattern = f"%{query}%"
            base_query = base_query.filter(
                db.or_(
                    cls.name.ilike(pattern),
                    cls.product_code.ilike(pattern)
                )
            )

        if location_id:
            base_query = base_query.filter(cls.location_id == location_id)

        return base_query.order_by(cls.name).paginate(
            page=page,
            per_page=per_page,
            error_out=False
        )

    def __repr__(self):
        return f'<Product {self.product_code}>'
