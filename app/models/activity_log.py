# File: app/models/activity_log.py
from datetime import datetime
from app.extensions import db


class ActivityLog(db.Model):
    """Audit trail of user actions"""
    __tablename__ = 'activity_logs'

    ACTIONS = ('CREATE', 'UPDATE', 'DELETE', 'VIEW', 'LOGIN', 'LOGOUT', 'COMPLETE', 'TRANSFER')
    MODULES = ('AUTH', 'PRODUCTS', 'INVENTORY', 'SALES', 'CUSTOMERS', 'REPORTS',
               'SETTINGS', 'SAMPLES', 'TRANSFERS')

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    action = db.Column(db.String(20), nullable=False, index=True)
    module = db.Column(db.String(20), nullable=False, index=True)
    description = db.Column(db.String(500), nullable=False)
    entity_type = db.Column(db.String(50))
    entity_id = db.Column(db.String(50))
    entity_name = db.Column(db.String(200))
    old_values = db.Column(db.JSON)
    new_values = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ActivityLog {self.action}/{self.module} by User {self.user_id}>'
