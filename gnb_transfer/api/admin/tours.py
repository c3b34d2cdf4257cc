from flask import request, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import or_, desc

from gnb_transfer.api.admin import admin_bp
from gnb_transfer.models import Tour
from gnb_transfer.models.enums import TourCategory
from gnb_transfer.extensions import db
from gnb_transfer.utils.decorators import admin_required
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.audit_logging import AuditLogger
from gnb_transfer.utils.dates import utcnow
from gnb_transfer.utils.toggles import make_toggle_view
from gnb_transfer.api.admin.schemas import AdminSchemas

# ===== TOUR MANAGEMENT =====

def _unique_slug(title, exclude_id=None):
    slug = Tour.slugify(title)
    query = Tour.query.filter_by(slug=slug)
    if exclude_id:
        query = query.filter(Tour.id != exclude_id)
    if query.first():
        slug = f"{slug}-{int(utcnow().timestamp())}"
    return slug


@admin_bp.route('/tours', methods=['GET'])
@admin_required()
def get_admin_tours():
    """
    Get paginated list of tours, inactive ones included

    Query params:
        - page, perPage: Pagination
        - search: Search in title and location
        - category: Filter by category
        - active, campaign: 'true' / 'false'
    """
    try:
        args = request.args.to_dict()
        pagination = AdminSchemas.validate_pagination(args)

        query = Tour.query

        if 'active' in args:
            query = query.filter_by(active=args['active'].lower() == 'true')

        if 'campaign' in args:
            query = query.filter_by(is_campaign=args['campaign'].lower() == 'true')

        if args.get('category'):
            try:
                query = query.filter_by(category=TourCategory(args['category'].lower()))
            except ValueError:
                return APIResponse.validation_error({'category': 'Unknown tour category'})

        if args.get('search'):
            search_term = f"%{args['search']}%"
            query = query.filter(
                or_(
                    Tour.title.ilike(search_term),
                    Tour.location.ilike(search_term)
                )
            )

        query = query.order_by(desc(Tour.created_at))

        paginated = query.paginate(
            page=pagination['page'],
            per_page=pagination['per_page'],
            error_out=False
        )

        return APIResponse.success({
            'tours': [tour.to_dict() for tour in paginated.items],
            'pagination': {
                'page': paginated.page,
                'perPage': paginated.per_page,
                'totalPages': paginated.pages,
                'totalItems': paginated.total
            }
        })

    except Exception as e:
        current_app.logger.error(f"Get tours error: {str(e)}")
        return APIResponse.error("Failed to fetch tours")


@admin_bp.route('/tours/<tour_id>', methods=['GET'])
@admin_required()
def get_admin_tour(tour_id):
    """Get detailed tour information"""
    try:
        tour = db.session.get(Tour, tour_id)
        if not tour:
            return APIResponse.not_found("Tour not found")

        tour_data = tour.to_dict()
        tour_data['totalBookings'] = tour.bookings.count()
        tour_data['campaignRule'] = tour.campaign_rule.to_dict() if tour.campaign_rule else None

        return APIResponse.success({'tour': tour_data})

    except Exception as e:
        current_app.logger.error(f"Get tour error: {str(e)}")
        return APIResponse.error("Failed to fetch tour details")


@admin_bp.route('/tours', methods=['POST'])
@admin_required('admin')
def create_tour():
    """Create new tour"""
    try:
        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_tour_create(data)

        if not is_valid:
            return APIResponse.validation_error(errors)

        cleaned_data['slug'] = _unique_slug(cleaned_data['title'])
        tour = Tour(**cleaned_data)
        db.session.add(tour)
        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='tour_created',
            entity_type='tour',
            entity_id=tour.id,
            description=f'Admin created tour {tour.title}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'tour': tour.to_dict()
        }, message='Tour created successfully', status_code=201)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Create tour error: {str(e)}")
        return APIResponse.error("Failed to create tour")


@admin_bp.route('/tours/<tour_id>', methods=['PATCH'])
@admin_required('admin')
def update_tour(tour_id):
    """
    Update tour details

    Setting ``discount`` by hand takes the tour out of its campaign; the
    next campaign run may put it back if a rule still matches.
    """
    try:
        tour = db.session.get(Tour, tour_id)
        if not tour:
            return APIResponse.not_found("Tour not found")

        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_tour_update(data)

        if not is_valid:
            return APIResponse.validation_error(errors)

        if 'title' in cleaned_data and cleaned_data['title'] != tour.title:
            cleaned_data['slug'] = _unique_slug(cleaned_data['title'], exclude_id=tour.id)

        if 'discount' in cleaned_data:
            cleaned_data['is_campaign'] = False
            cleaned_data['campaign_rule_id'] = None

        for key, value in cleaned_data.items():
            setattr(tour, key, value)

        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='tour_updated',
            entity_type='tour',
            entity_id=tour_id,
            description=f'Admin updated tour {tour.title}',
            changes=cleaned_data
        )

        return APIResponse.success({
            'tour': tour.to_dict()
        }, message='Tour updated successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Update tour error: {str(e)}")
        return APIResponse.error("Failed to update tour")


@admin_bp.route('/tours/<tour_id>', methods=['DELETE'])
@admin_required('admin')
def delete_tour(tour_id):
    """Deactivate tour. Tours are never hard-deleted because bookings point at them."""
    try:
        tour = db.session.get(Tour, tour_id)
        if not tour:
            return APIResponse.not_found("Tour not found")

        tour.active = False
        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='tour_deactivated',
            entity_type='tour',
            entity_id=tour_id,
            description=f'Admin deactivated tour {tour.title}'
        )

        return APIResponse.success(message='Tour deactivated successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Delete tour error: {str(e)}")
        return APIResponse.error("Failed to deactivate tour")


admin_bp.add_url_rule(
    '/tours/<entity_id>/toggle',
    view_func=admin_required('admin')(make_toggle_view(Tour, {'active': 'active'}, 'tour')),
    methods=['PATCH']
)
