# app/socket_events.py

from flask_socketio import emit
from flask_login import current_user
from flask import current_app
from app.extensions import socketio
import functools
from redis.exceptions import RedisError


def handle_redis_error(f):
    """Keep notification failures away from the request that caused them.

    Failures are logged and the notification dropped.
    """
    @functools.wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except RedisError as e:
            current_app.logger.error(f"Redis error in socket event: {str(e)}")
        except Exception as e:
            current_app.logger.error(f"Unexpected error in socket event: {str(e)}")
        return None
    return wrapped


@socketio.on('connect')
def handle_connect():
    if not current_user.is_authenticated:
        return False
    emit('status', {'msg': f'{current_user.username} connected'})
    current_app.logger.info(f'Client connected: {current_user.username}')
    return True


@socketio.on('disconnect')
def handle_disconnect(reason=None):
    if current_user.is_authenticated:
        current_app.logger.info(f'Client disconnected: {current_user.username}')


@handle_redis_error
def notify_inventory_update(product_id, action, data):
    """
    Broadcast an inventory change.
    Args:
        product_id: Changed product's ID
        action: 'transfer', 'receive' or 'adjust'
        data: Change details
    """
    payload = {
        'product_id': product_id,
        'action': action,
        'data': data,
        'user': current_user.username if current_user and current_user.is_authenticated else 'System'
    }
    socketio.emit('inventory_update', payload)
    return payload


@handle_redis_error
def notify_stock_alert(product, level):
    """
    Broadcast a low or out of stock alert.
    Args:
        product: Product model instance
        level: 'low' or 'out'
    """
    payload = {
        'product_id': product.id,
        'product_name': product.name,
        'location': product.location.name if product.location else None,
        'level': level,
        'quantity': str(product.total_stock),
        'minimum': str(product.minimum_stock)
    }
    socketio.emit('stock_alert', payload)
    return payload
