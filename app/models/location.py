# app/models/location.py

from datetime import datetime
from sqlalchemy.orm import validates
from app.extensions import db


class Location(db.Model):
    __tablename__ = 'locations'

    TYPES = ('warehouse', 'showroom')
    STATUSES = ('active', 'inactive')

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    type = db.Column(db.String(20), nullable=False, default='warehouse')
    address = db.Column(db.String(255))
    status = db.Column(db.String(20), nullable=False, default='active', index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    lots = db.relationship('Lot', backref='location', lazy='dynamic')

    # Locations every fresh installation starts with
    PREDEFINED_LOCATIONS = [
        ("Main Warehouse", "warehouse", "Plot 12, Tejgaon I/A, Dhaka"),
        ("Narayanganj Warehouse", "warehouse", "BSCIC Area, Narayanganj"),
        ("Gulshan Showroom", "showroom", "Road 11, Gulshan 2, Dhaka"),
        ("Dhanmondi Showroom", "showroom", "Road 27, Dhanmondi, Dhaka"),
    ]

    @validates('type')
    def validate_type(self, key, value):
        if value not in self.TYPES:
            raise ValueError("Location type must be 'warehouse' or 'showroom'")
        return value

    @validates('status')
    def validate_status(self, key, value):
        if value not in self.STATUSES:
            raise ValueError("Invalid location status")
        return value

    @validates('name')
    def validate_name(self, key, value):
        if not value or not value.strip():
            raise ValueError("Location name cannot be empty")
        return value.strip()

    @classmethod
    def get_predefined_locations(cls):
        """Create predefined locations if they don't exist."""
        for name, loc_type, address in cls.PREDEFINED_LOCATIONS:
            if not cls.query.filter_by(name=name).first():
                db.session.add(cls(name=name, type=loc_type, address=address))
        db.session.commit()
        return cls.query.filter(
            cls.name.in_([n for n, _, _ in cls.PREDEFINED_LOCATIONS])
        ).order_by(cls.name).all()

    @classmethod
    def active(cls):
        return cls.query.filter_by(status='active').order_by(cls.name).all()

    def is_active(self):
        return self.status == 'active'

    def __repr__(self):
        return f'<Location {self.name}>'
