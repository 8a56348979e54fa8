# app/auth/permissions.py

ACTION_ALIASES = {
    'read': 'view',
    'create': 'add',
    'update': 'edit',
    'remove': 'delete',
}

# Role defaults; super admins bypass this table entirely.
ROLE_PERMISSIONS = {
    'admin': {
        'dashboard': {'view'},
        'products': {'view', 'add', 'edit'},
        'inventory': {'view', 'add', 'edit', 'transfer'},
        'transfers': {'view', 'add', 'approve'},
        'customers': {'view', 'add', 'edit'},
        'sales': {'view', 'add', 'edit'},
        'reports': {'view', 'export'},
        'activitylogs': {'view'},
    },
    'sales_manager': {
        'dashboard': {'view'},
        'sales': {'view', 'add', 'edit'},
        'customers': {'view', 'add', 'edit'},
        'products': {'view'},
        'inventory': {'view'},
        'reports': {'view', 'export'},
    },
    'investor': {
        'dashboard': {'view'},
        'reports': {'view'},
    },
}

# Never grantable to sales managers, whatever their overrides say
SALES_MANAGER_FORBIDDEN = {'delete', 'transfer'}


def normalize_action(action):
    action = (action or 'view').lower()
    return ACTION_ALIASES.get(action, action)


class PermissionGate:
    """Answers capability questions for one user.

    ``has_permission`` is a pure predicate; callers decide what a
    ``False`` means for them.
    """

    def __init__(self, user):
        self.user = user

    @property
    def is_location_scoped(self):
        return self.user is not None and self.user.role != 'super_admin'

    def has_permission(self, module, action='view', scope_location_id=None):
        user = self.user
        if user is None or not getattr(user, 'is_active', False):
            return False
        if user.role == 'super_admin':
            return True

        module = module.lower()
        action = normalize_action(action)

        if user.role == 'sales_manager' and action in SALES_MANAGER_FORBIDDEN:
            return False

        if not self._module_allows(module, action):
            return False

        if scope_location_id not in (None, ''):
            return user.can_access_location(scope_location_id)
        return True

    def can_transfer_from(self, location_id):
        return self.has_permission('inventory', 'transfer', location_id)

    def _module_allows(self, module, action):
        overrides = (self.user.permissions or {}).get(module)
        if isinstance(overrides, bool):
            return overrides
        if isinstance(overrides, dict):
            for key, granted in overrides.items():
                if normalize_action(key) == action:
                    return bool(granted)
        return action in ROLE_PERMISSIONS.get(self.user.role, {}).get(module, set())
