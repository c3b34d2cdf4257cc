"""
Server side of the admin panels' optimistic toggles.

The panel flips a boolean locally, sends ``{field, value}`` and rolls its
local state back when the write fails. ``make_toggle_view`` builds the
endpoint for any model: it only touches allow-listed boolean columns and
answers with the previous and authoritative current value.
"""

import logging
from typing import Callable, Dict, Optional, Tuple

from flask import request, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import SQLAlchemyError

from gnb_transfer.extensions import db
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.audit_logging import AuditLogger

logger = logging.getLogger(__name__)


class ToggleError(Exception):
    pass


def apply_toggle(instance, field: str, value: bool, allowed_fields: Dict[str, str]) -> Tuple[bool, bool]:
    """
    Set a boolean column and commit.

    ``allowed_fields`` maps the API field name to the model attribute.
    Returns (previous, current). Rolls back and raises ToggleError on failure.
    """
    if field not in allowed_fields:
        raise ToggleError(f"Field '{field}' cannot be toggled")
    if not isinstance(value, bool):
        raise ToggleError('value must be a boolean')

    attribute = allowed_fields[field]
    previous = bool(getattr(instance, attribute))
    setattr(instance, attribute, value)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Toggle of {type(instance).__name__}.{attribute} failed: {str(e)}")
        raise ToggleError('Failed to save change') from e

    return previous, bool(getattr(instance, attribute))


def make_toggle_view(model, allowed_fields: Dict[str, str], entity_type: str,
                     after_toggle: Optional[Callable] = None):
    """Build a ``PATCH .../<entity_id>/toggle`` view for ``model``"""

    def toggle_view(entity_id):
        instance = db.session.get(model, entity_id)
        if not instance:
            return APIResponse.not_found(f"{entity_type.replace('_', ' ').capitalize()} not found")

        data = request.get_json(silent=True) or {}
        field = data.get('field')
        value = data.get('value')

        try:
            previous, current = apply_toggle(instance, field, value, allowed_fields)
        except ToggleError as e:
            status = 400 if field not in allowed_fields or not isinstance(value, bool) else 500
            return APIResponse.error(str(e), status_code=status, error_code='toggle_failed',
                                     data={'field': field, 'current': _current(instance, allowed_fields, field)})

        if after_toggle:
            after_toggle(instance, field, current)

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action=f'{entity_type}_toggled',
            entity_type=entity_type,
            entity_id=instance.id,
            description=f'{field} set to {current}',
            changes={field: {'before': previous, 'after': current}}
        )
        current_app.logger.info(f"{entity_type} {instance.id}: {field} {previous} -> {current}")

        return APIResponse.success({
            'id': instance.id,
            'field': field,
            'previous': previous,
            'current': current
        })

    toggle_view.__name__ = f'toggle_{entity_type}'
    return toggle_view


def _current(instance, allowed_fields, field):
    if field in allowed_fields:
        db.session.refresh(instance)
        return bool(getattr(instance, allowed_fields[field]))
    return None
