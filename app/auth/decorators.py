from functools import wraps
from flask import abort, flash, redirect, url_for
from flask_login import current_user

from app.auth.permissions import PermissionGate


def permission_required(module, action='view'):
    """Decorator factory restricting a view to users holding a capability.

    Args:
        module: Permission module, e.g. ``'inventory'``
        action: Action within the module, e.g. ``'transfer'``

    Returns:
        decorator: Wraps the view function

    Raises:
        403: If the current user lacks the permission
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                flash('Please log in to access this page.', 'warning')
                return redirect(url_for('auth.login'))

            if not PermissionGate(current_user).has_permission(module, action):
                abort(403)

            return f(*args, **kwargs)
        return decorated_function
    return decorator
