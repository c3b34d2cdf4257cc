from functools import wraps

from flask_jwt_extended import get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from gnb_transfer.utils.api_response import APIResponse

ADMIN_ROLES = ('admin', 'manager', 'superadmin')


def admin_required(*roles):
    """
    Decorator to require a JWT whose ``role`` claim is one of ``roles``.

    With no roles given any back-office role is accepted. ``superadmin``
    passes every check.
    """
    allowed = set(roles or ADMIN_ROLES) | {'superadmin'}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                verify_jwt_in_request()
            except (JWTExtendedException, PyJWTError):
                return APIResponse.unauthorized("Please login to continue")

            role = get_jwt().get('role')
            if role not in allowed:
                return APIResponse.forbidden("You don't have permission to access this resource")

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def booking_enabled_required(f):
    """Reject the request while the kill switch or maintenance mode is on"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from gnb_transfer.services.settings import get_settings_service

        settings = get_settings_service().get_system_settings()
        if not settings.accepting_bookings:
            return APIResponse.service_unavailable(
                settings.maintenance_message or "Booking is temporarily disabled",
                error_code='booking_disabled'
            )
        return f(*args, **kwargs)
    return decorated_function
