# app/models/__init__.py

from app.models.location import Location
from app.models.product import Product
from app.models.lot import Lot
from app.models.transfer import StockTransfer
from app.models.user import User, user_locations
from app.models.activity_log import ActivityLog

__all__ = [
    'Location',
    'Product',
    'Lot',
    'StockTransfer',
    'User',
    'user_locations',
    'ActivityLog',
]
