from flask import request, current_app
from sqlalchemy import desc, func

from gnb_transfer.api import api_bp
from gnb_transfer.models import ExtraService, Tour
from gnb_transfer.models.enums import TourCategory
from gnb_transfer.extensions import db
from gnb_transfer.utils.api_response import APIResponse

# ==================== CATALOG ENDPOINTS ====================

@api_bp.route('/tours', methods=['GET'])
def get_tours():
    """
    List active tours

    Query Parameters:
        category: Filter by tour category
        location: Filter by city (case-insensitive)
        campaign: 'true' to only return tours with a running campaign discount
    """
    try:
        query = Tour.query.filter_by(active=True)

        category = request.args.get('category')
        if category:
            try:
                query = query.filter_by(category=TourCategory(category.lower()))
            except ValueError:
                return APIResponse.validation_error({'category': 'Unknown tour category'})

        location = request.args.get('location')
        if location:
            query = query.filter(func.lower(Tour.location) == location.strip().lower())

        if request.args.get('campaign', '').lower() == 'true':
            query = query.filter(Tour.is_campaign.is_(True))

        tours = query.order_by(desc(Tour.is_campaign), Tour.title).all()

        return APIResponse.success(
            data=[tour.to_dict() for tour in tours],
            message=f"Found {len(tours)} tour(s)"
        )

    except Exception as e:
        current_app.logger.error(f"Get tours error: {str(e)}")
        return APIResponse.error(
            message="An error occurred while fetching tours",
            status_code=500
        )


@api_bp.route('/tours/<tour_id>', methods=['GET'])
def get_tour(tour_id):
    """Get a single tour by id or slug"""
    try:
        tour = db.session.get(Tour, tour_id) or Tour.query.filter_by(slug=tour_id).first()
        if not tour or not tour.active:
            return APIResponse.not_found("Tour not found")

        return APIResponse.success(data=tour.to_dict())

    except Exception as e:
        current_app.logger.error(f"Get tour error: {str(e)}")
        return APIResponse.error(
            message="An error occurred while fetching the tour",
            status_code=500
        )


@api_bp.route('/extra-services', methods=['GET'])
def get_extra_services():
    """Active extra-service catalog, in display order"""
    try:
        services = ExtraService.get_active_services()
        return APIResponse.success(data=[s.to_dict() for s in services])

    except Exception as e:
        current_app.logger.error(f"Get extra services error: {str(e)}")
        return APIResponse.error(
            message="An error occurred while fetching extra services",
            status_code=500
        )
