from flask import request, current_app
from flask_jwt_extended import get_jwt_identity

from gnb_transfer.api.admin import admin_bp
from gnb_transfer.services.settings import get_settings_service
from gnb_transfer.utils.decorators import admin_required
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.audit_logging import AuditLogger
from gnb_transfer.api.admin.schemas import AdminSchemas

# ===== SYSTEM SETTINGS =====

@admin_bp.route('/system-settings', methods=['GET'])
@admin_required()
def get_system_settings():
    try:
        settings = get_settings_service().get_system_settings()
        return APIResponse.success({'settings': settings.to_dict()})

    except Exception as e:
        current_app.logger.error(f"Get system settings error: {str(e)}")
        return APIResponse.error("Failed to fetch system settings")


@admin_bp.route('/system-settings', methods=['PUT'])
@admin_required('admin')
def update_system_settings():
    """Update any of siteStatus, maintenanceMessage, bookingEnabled, paymentEnabled, registrationsEnabled"""
    try:
        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_system_settings(data)

        if not is_valid:
            return APIResponse.validation_error(errors)

        service = get_settings_service()
        before = service.get_system_settings().to_dict()
        settings = service.update_system_settings(**cleaned_data)
        after = settings.to_dict()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='system_settings_updated',
            entity_type='settings',
            description='Admin updated system settings',
            changes={k: {'before': before[k], 'after': after[k]} for k in after if before[k] != after[k]}
        )

        return APIResponse.success({'settings': after}, message='System settings updated successfully')

    except Exception as e:
        current_app.logger.error(f"Update system settings error: {str(e)}")
        return APIResponse.error("Failed to update system settings")


@admin_bp.route('/kill-switch', methods=['POST'])
@admin_required('superadmin')
def activate_kill_switch():
    """Emergency stop: maintenance mode with booking and payment disabled"""
    try:
        data = request.get_json(silent=True) or {}
        message = str(data.get('message') or '').strip() or None

        settings = get_settings_service().activate_kill_switch(message)

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='kill_switch_activated',
            entity_type='settings',
            description=settings.maintenance_message,
            changes={'settings': settings.to_dict()}
        )
        current_app.logger.warning(f"Kill switch activated by {get_jwt_identity()}")

        return APIResponse.success({'settings': settings.to_dict()}, message='Kill switch activated')

    except Exception as e:
        current_app.logger.error(f"Kill switch error: {str(e)}")
        return APIResponse.error("Failed to activate kill switch", status_code=500)


@admin_bp.route('/restore', methods=['POST'])
@admin_required('superadmin')
def restore_system():
    """Undo the kill switch"""
    try:
        settings = get_settings_service().restore()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='system_restored',
            entity_type='settings',
            description='System restored to normal operations',
            changes={'settings': settings.to_dict()}
        )

        return APIResponse.success({'settings': settings.to_dict()}, message='System restored')

    except Exception as e:
        current_app.logger.error(f"Restore system error: {str(e)}")
        return APIResponse.error("Failed to restore system", status_code=500)


# ===== FEATURE TOGGLES =====

@admin_bp.route('/features', methods=['GET'])
@admin_required()
def get_features():
    try:
        features = get_settings_service().get_features()
        return APIResponse.success({
            'features': [{'id': feature_id, 'enabled': enabled} for feature_id, enabled in features.items()]
        })

    except Exception as e:
        current_app.logger.error(f"Get features error: {str(e)}")
        return APIResponse.error("Failed to fetch features")


@admin_bp.route('/features/toggle', methods=['POST'])
@admin_required('admin')
def toggle_feature():
    """Body: {featureId, enabled, description?}"""
    try:
        data = request.get_json(silent=True) or {}
        feature_id = str(data.get('featureId') or '').strip()
        enabled = data.get('enabled')

        errors = {}
        if not feature_id:
            errors['featureId'] = 'featureId is required'
        if not isinstance(enabled, bool):
            errors['enabled'] = 'enabled must be a boolean'
        if errors:
            return APIResponse.validation_error(errors)

        service = get_settings_service()
        previous = service.is_feature_enabled(feature_id)
        current = service.set_feature(feature_id, enabled, description=data.get('description'))

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='feature_toggled',
            entity_type='feature',
            entity_id=feature_id,
            description=f"Feature {feature_id} {'enabled' if current else 'disabled'}",
            changes={'enabled': {'before': previous, 'after': current}}
        )

        return APIResponse.success({
            'featureId': feature_id,
            'previous': previous,
            'current': current
        }, message='Feature updated')

    except Exception as e:
        current_app.logger.error(f"Toggle feature error: {str(e)}")
        return APIResponse.error("Failed to toggle feature")
