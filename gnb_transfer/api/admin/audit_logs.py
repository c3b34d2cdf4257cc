from flask import request, current_app
from sqlalchemy import desc

from gnb_transfer.api.admin import admin_bp
from gnb_transfer.models import AuditLog
from gnb_transfer.utils.decorators import admin_required
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.api.admin.schemas import AdminSchemas


@admin_bp.route('/audit-logs', methods=['GET'])
@admin_required()
def get_audit_logs():
    """
    Get paginated audit trail, newest first

    Query params:
        - page, perPage: Pagination
        - action: Filter by action (e.g. coupon_created)
        - entityType: Filter by entity type
        - userId: Filter by acting admin
        - startDate, endDate: Date range filter
    """
    try:
        args = request.args.to_dict()
        pagination = AdminSchemas.validate_pagination(args)

        query = AuditLog.query

        if args.get('action'):
            query = query.filter_by(action=args['action'])

        if args.get('entityType'):
            query = query.filter_by(entity_type=args['entityType'])

        if args.get('userId'):
            query = query.filter_by(user_id=args['userId'])

        start_date, end_date = AdminSchemas.validate_date_range(args)
        if start_date:
            query = query.filter(AuditLog.created_at >= start_date)
        if end_date:
            query = query.filter(AuditLog.created_at <= end_date)

        paginated = query.order_by(desc(AuditLog.created_at)).paginate(
            page=pagination['page'],
            per_page=pagination['per_page'],
            error_out=False
        )

        return APIResponse.success({
            'logs': [log.to_dict() for log in paginated.items],
            'pagination': {
                'page': paginated.page,
                'perPage': paginated.per_page,
                'totalPages': paginated.pages,
                'totalItems': paginated.total
            }
        })

    except Exception as e:
        current_app.logger.error(f"Get audit logs error: {str(e)}")
        return APIResponse.error("Failed to fetch audit logs")
