from flask import request, current_app
from flask_jwt_extended import get_jwt_identity

from gnb_transfer.api.admin import admin_bp
from gnb_transfer.models import ExtraService
from gnb_transfer.extensions import db
from gnb_transfer.utils.decorators import admin_required
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.audit_logging import AuditLogger
from gnb_transfer.utils.toggles import make_toggle_view
from gnb_transfer.api.admin.schemas import AdminSchemas

# ===== EXTRA SERVICE CATALOG =====

@admin_bp.route('/extra-services', methods=['GET'])
@admin_required()
def get_admin_extra_services():
    """Full catalog, inactive services included"""
    try:
        services = ExtraService.query.order_by(ExtraService.sort_order.asc(), ExtraService.name.asc()).all()
        return APIResponse.success({'extraServices': [s.to_dict() for s in services]})

    except Exception as e:
        current_app.logger.error(f"Get extra services error: {str(e)}")
        return APIResponse.error("Failed to fetch extra services")


@admin_bp.route('/extra-services', methods=['POST'])
@admin_required('admin')
def create_extra_service():
    """Add an extra service to the catalog"""
    try:
        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_extra_service(data)

        if not is_valid:
            return APIResponse.validation_error(errors)

        cleaned_data.setdefault('code', ExtraService.code_from_key(cleaned_data['name']))
        duplicate = ExtraService.query.filter(
            (ExtraService.code == cleaned_data['code']) | (ExtraService.name == cleaned_data['name'])
        ).first()
        if duplicate:
            return APIResponse.validation_error({'code': 'An extra service with this code or name already exists'})

        service = ExtraService(**cleaned_data)
        db.session.add(service)
        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='extra_service_created',
            entity_type='extra_service',
            entity_id=service.id,
            description=f'Admin created extra service {service.code}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'extraService': service.to_dict()
        }, message='Extra service created successfully', status_code=201)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Create extra service error: {str(e)}")
        return APIResponse.error("Failed to create extra service")


@admin_bp.route('/extra-services/<service_id>', methods=['PATCH'])
@admin_required('admin')
def update_extra_service(service_id):
    """Update an extra service. Existing bookings keep the price they were made at."""
    try:
        service = db.session.get(ExtraService, service_id)
        if not service:
            return APIResponse.not_found("Extra service not found")

        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_extra_service(data, partial=True)

        if not is_valid:
            return APIResponse.validation_error(errors)

        for key, value in cleaned_data.items():
            setattr(service, key, value)

        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='extra_service_updated',
            entity_type='extra_service',
            entity_id=service_id,
            description=f'Admin updated extra service {service.code}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'extraService': service.to_dict()
        }, message='Extra service updated successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Update extra service error: {str(e)}")
        return APIResponse.error("Failed to update extra service")


@admin_bp.route('/extra-services/<service_id>', methods=['DELETE'])
@admin_required('admin')
def delete_extra_service(service_id):
    """Remove an extra service from the catalog"""
    try:
        service = db.session.get(ExtraService, service_id)
        if not service:
            return APIResponse.not_found("Extra service not found")

        code = service.code
        db.session.delete(service)
        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='extra_service_deleted',
            entity_type='extra_service',
            entity_id=service_id,
            description=f'Admin deleted extra service {code}'
        )

        return APIResponse.success(message='Extra service deleted successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Delete extra service error: {str(e)}")
        return APIResponse.error("Failed to delete extra service")


admin_bp.add_url_rule(
    '/extra-services/<entity_id>/toggle',
    view_func=admin_required('admin')(make_toggle_view(ExtraService, {'active': 'active'}, 'extra_service')),
    methods=['PATCH']
)
