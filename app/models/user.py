from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from sqlalchemy.orm import validates
from app.extensions import db


user_locations = db.Table(
    'user_locations',
    db.Column('user_id', db.Integer, db.ForeignKey('user.id'), primary_key=True),
    db.Column('location_id', db.Integer, db.ForeignKey('locations.id'), primary_key=True)
)


class User(UserMixin, db.Model):
    """User model representing application users.

    Inherits from:
        UserMixin: Provides default implementations for Flask-Login interface
        db.Model: SQLAlchemy model base class
    """
    __tablename__ = 'user'

    ROLES = ('super_admin', 'admin', 'sales_manager', 'investor')

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    role = db.Column(
        db.String(20),
        nullable=False,
        default='investor'
    )
    # Per-module overrides: {"reports": {"export": true}, "samples": false}
    permissions = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow
    )
    last_login = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    locations = db.relationship('Location', secondary=user_locations, lazy='selectin')
    activity_logs = db.relationship('ActivityLog', backref=db.backref('user', lazy='joined'), lazy='dynamic')

    @validates('email')
    def validate_email(self, key, value):
        if not value or '@' not in value:
            raise ValueError("Invalid email address")
        return value.strip().lower()

    @validates('role')
    def validate_role(self, key, value):
        if value not in self.ROLES:
            raise ValueError(f"Unknown role: {value}")
        return value

    def set_password(self, password):
        """Set user's password hash from plain text password.

        Args:
            password: Plain text password to hash
        """
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if plain text password matches hash.

        Args:
            password: Plain text password to verify

        Returns:
            bool: True if password matches, False otherwise
        """
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def is_super_admin(self):
        return self.role == 'super_admin'

    def is_admin(self):
        """Admins and super admins."""
        return self.role in ('admin', 'super_admin')

    def accessible_location_ids(self):
        """Location ids this user is restricted to.

        Returns:
            list | None: Sorted ids, or None when the user is not
            restricted (super admins, or nobody assigned any location).
        """
        if self.is_super_admin() or not self.locations:
            return None
        return sorted(location.id for location in self.locations)

    def can_access_location(self, location_id):
        allowed = self.accessible_location_ids()
        if allowed is None:
            return True
        try:
            return int(location_id) in allowed
        except (TypeError, ValueError):
            return False

    def update_last_login(self):
        """Update user's last login timestamp to current time."""
        self.last_login = datetime.utcnow()
        db.session.commit()

    def __repr__(self):
        return f'<User {self.username}>'
