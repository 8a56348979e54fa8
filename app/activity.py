# app/activity.py

from app.models import ActivityLog
from app.extensions import db

MAX_DESCRIPTION_LENGTH = 500
MAX_ENTITY_NAME_LENGTH = 200


def log_activity(
    user,
    action,
    module,
    description,
    entity_type=None,
    entity_id=None,
    entity_name=None,
    old_values=None,
    new_values=None
):
    """Create an activity log entry.

    The entry is added to the current session; committing is left to
    the caller so the log lands in the same transaction as the change
    it describes.

    Args:
        user: The user performing the action
        action: One of ``ActivityLog.ACTIONS``
        module: One of ``ActivityLog.MODULES``
        description: Human readable summary
        entity_type: Optional kind of the affected record
        entity_id: Optional id of the affected record
        entity_name: Optional display name of the affected record
        old_values: Optional JSON-serialisable snapshot before the change
        new_values: Optional JSON-serialisable snapshot after the change

    Returns:
        ActivityLog: The created log entry

    Raises:
        ValueError: If action, module or description is invalid
    """
    if action not in ActivityLog.ACTIONS:
        raise ValueError(f"Invalid activity action: {action}")
    if module not in ActivityLog.MODULES:
        raise ValueError(f"Invalid activity module: {module}")
    if not description:
        raise ValueError("Activity description is required")

    log = ActivityLog(
        user_id=user.id,
        action=action,
        module=module,
        description=description[:MAX_DESCRIPTION_LENGTH],
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        entity_name=entity_name[:MAX_ENTITY_NAME_LENGTH] if entity_name else None,
        old_values=old_values,
        new_values=new_values
    )
    db.session.add(log)
    return log
