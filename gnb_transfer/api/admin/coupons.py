from flask import request, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import or_, desc

from gnb_transfer.api.admin import admin_bp
from gnb_transfer.models import Booking, Coupon
from gnb_transfer.extensions import db
from gnb_transfer.utils.decorators import admin_required
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.audit_logging import AuditLogger
from gnb_transfer.utils.toggles import make_toggle_view
from gnb_transfer.api.admin.schemas import AdminSchemas

# ===== COUPON MANAGEMENT =====

@admin_bp.route('/coupons', methods=['GET'])
@admin_required()
def get_coupons():
    """
    Get paginated list of coupons

    Query params:
        - page, perPage: Pagination
        - search: Search in code and description
        - active: 'true' / 'false'
    """
    try:
        args = request.args.to_dict()
        pagination = AdminSchemas.validate_pagination(args)

        query = Coupon.query

        if 'active' in args:
            query = query.filter_by(active=args['active'].lower() == 'true')

        if args.get('search'):
            search_term = f"%{args['search']}%"
            query = query.filter(
                or_(
                    Coupon.code.ilike(search_term),
                    Coupon.description.ilike(search_term)
                )
            )

        query = query.order_by(desc(Coupon.created_at))

        paginated = query.paginate(
            page=pagination['page'],
            per_page=pagination['per_page'],
            error_out=False
        )

        return APIResponse.success({
            'coupons': [coupon.to_dict() for coupon in paginated.items],
            'pagination': {
                'page': paginated.page,
                'perPage': paginated.per_page,
                'totalPages': paginated.pages,
                'totalItems': paginated.total
            }
        })

    except Exception as e:
        current_app.logger.error(f"Get coupons error: {str(e)}")
        return APIResponse.error("Failed to fetch coupons")


@admin_bp.route('/coupons/<coupon_id>', methods=['GET'])
@admin_required()
def get_coupon(coupon_id):
    """Get coupon with its redemption count"""
    try:
        coupon = db.session.get(Coupon, coupon_id)
        if not coupon:
            return APIResponse.not_found("Coupon not found")

        coupon_data = coupon.to_dict()
        coupon_data['usageRemaining'] = coupon.usage_remaining
        coupon_data['totalBookings'] = Booking.query.filter_by(coupon_id=coupon.id).count()

        return APIResponse.success({'coupon': coupon_data})

    except Exception as e:
        current_app.logger.error(f"Get coupon error: {str(e)}")
        return APIResponse.error("Failed to fetch coupon details")


@admin_bp.route('/coupons', methods=['POST'])
@admin_required('admin')
def create_coupon():
    """Create a discount code"""
    try:
        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_coupon_create(data)

        if not is_valid:
            return APIResponse.validation_error(errors)

        if Coupon.query.filter_by(code=cleaned_data['code']).first():
            return APIResponse.validation_error({'code': 'Coupon code already exists'})

        admin_id = get_jwt_identity()
        coupon = Coupon(created_by=admin_id, **cleaned_data)
        db.session.add(coupon)
        db.session.commit()

        AuditLogger.log_action(
            user_id=admin_id,
            action='coupon_created',
            entity_type='coupon',
            entity_id=coupon.id,
            description=f'Admin created coupon {coupon.code}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'coupon': coupon.to_dict()
        }, message='Coupon created successfully', status_code=201)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Create coupon error: {str(e)}")
        return APIResponse.error("Failed to create coupon")


@admin_bp.route('/coupons/<coupon_id>', methods=['PATCH'])
@admin_required('admin')
def update_coupon(coupon_id):
    """Update coupon. The usage count is not editable."""
    try:
        coupon = db.session.get(Coupon, coupon_id)
        if not coupon:
            return APIResponse.not_found("Coupon not found")

        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_coupon_update(data, current=coupon)

        if not is_valid:
            return APIResponse.validation_error(errors)

        new_code = cleaned_data.get('code')
        if new_code and new_code != coupon.code and Coupon.query.filter_by(code=new_code).first():
            return APIResponse.validation_error({'code': 'Coupon code already exists'})

        for key, value in cleaned_data.items():
            setattr(coupon, key, value)

        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='coupon_updated',
            entity_type='coupon',
            entity_id=coupon_id,
            description=f'Admin updated coupon {coupon.code}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'coupon': coupon.to_dict()
        }, message='Coupon updated successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Update coupon error: {str(e)}")
        return APIResponse.error("Failed to update coupon")


@admin_bp.route('/coupons/<coupon_id>', methods=['DELETE'])
@admin_required('admin')
def delete_coupon(coupon_id):
    """
    Delete coupon

    Coupons already redeemed by bookings are deactivated instead, so the
    bookings keep their reference.
    """
    try:
        coupon = db.session.get(Coupon, coupon_id)
        if not coupon:
            return APIResponse.not_found("Coupon not found")

        code = coupon.code
        if Booking.query.filter_by(coupon_id=coupon.id).count():
            coupon.active = False
            action, message = 'coupon_deactivated', 'Coupon deactivated successfully'
        else:
            db.session.delete(coupon)
            action, message = 'coupon_deleted', 'Coupon deleted successfully'
        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action=action,
            entity_type='coupon',
            entity_id=coupon_id,
            description=f'Admin removed coupon {code}'
        )

        return APIResponse.success(message=message)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Delete coupon error: {str(e)}")
        return APIResponse.error("Failed to delete coupon")


admin_bp.add_url_rule(
    '/coupons/<entity_id>/toggle',
    view_func=admin_required('admin')(make_toggle_view(Coupon, {'active': 'active'}, 'coupon')),
    methods=['PATCH']
)
