import io

import pandas as pd
from flask import request, current_app, Response
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import or_, desc

from gnb_transfer.api.admin import admin_bp
from gnb_transfer.models import Booking
from gnb_transfer.models.enums import BookingStatus
from gnb_transfer.extensions import db
from gnb_transfer.utils.decorators import admin_required
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.audit_logging import AuditLogger
from gnb_transfer.utils.dates import utcnow
from gnb_transfer.api.admin.schemas import AdminSchemas

EXPORT_COLUMNS = [
    ('Reference', 'bookingReference'),
    ('Status', 'status'),
    ('Name', 'name'),
    ('Email', 'email'),
    ('Phone', 'phone'),
    ('Tour', 'tourTitle'),
    ('Date', 'date'),
    ('Time', 'time'),
    ('Adults', 'adultsCount'),
    ('Children', 'childrenCount'),
    ('Infants', 'infantsCount'),
    ('Extras Total', 'extraServicesTotal'),
    ('Discount Code', 'discountCode'),
    ('Discount', 'discountAmount'),
    ('Total', 'totalPrice'),
    ('Payment Method', 'paymentMethod'),
    ('Created', 'createdAt'),
]


def bookings_to_csv(bookings) -> bytes:
    """Render bookings as CSV with one column per ``EXPORT_COLUMNS`` entry"""
    rows = []
    for booking in bookings:
        data = booking.to_dict(include_relations=False)
        rows.append({header: data.get(key) for header, key in EXPORT_COLUMNS})

    df = pd.DataFrame(rows, columns=[header for header, _ in EXPORT_COLUMNS])
    buf = io.BytesIO()
    df.to_csv(buf, index=False)
    return buf.getvalue()


def _filtered_bookings(args):
    """Bookings query with the list filters applied (status, search, date range)"""
    query = Booking.query

    if args.get('search'):
        search_term = f"%{args['search']}%"
        query = query.filter(
            or_(
                Booking.booking_reference.ilike(search_term),
                Booking.name.ilike(search_term),
                Booking.email.ilike(search_term)
            )
        )

    if args.get('status'):
        query = query.filter_by(status=BookingStatus(args['status'].lower()))

    if args.get('tourId'):
        query = query.filter_by(tour_id=args['tourId'])

    start_date, end_date = AdminSchemas.validate_date_range(args)
    if start_date:
        query = query.filter(Booking.created_at >= start_date)
    if end_date:
        query = query.filter(Booking.created_at <= end_date)

    return query.order_by(desc(Booking.created_at))


# ===== BOOKING MANAGEMENT =====

@admin_bp.route('/bookings', methods=['GET'])
@admin_required()
def get_bookings():
    """
    Get paginated list of bookings with filtering

    Query params:
        - page, perPage: Pagination
        - search: Search in reference, name and email
        - status: Filter by status
        - tourId: Filter by tour
        - startDate, endDate: Date range filter
    """
    try:
        args = request.args.to_dict()
        pagination = AdminSchemas.validate_pagination(args)

        try:
            query = _filtered_bookings(args)
        except ValueError:
            return APIResponse.validation_error({'status': 'Unknown booking status'})

        paginated = query.paginate(
            page=pagination['page'],
            per_page=pagination['per_page'],
            error_out=False
        )

        return APIResponse.success({
            'bookings': [b.to_dict(include_relations=False) for b in paginated.items],
            'pagination': {
                'page': paginated.page,
                'perPage': paginated.per_page,
                'totalPages': paginated.pages,
                'totalItems': paginated.total
            }
        })

    except Exception as e:
        current_app.logger.error(f"Get bookings error: {str(e)}")
        return APIResponse.error("Failed to fetch bookings")


@admin_bp.route('/bookings/export', methods=['GET'])
@admin_required()
def export_bookings():
    """Download the filtered bookings as CSV"""
    try:
        args = request.args.to_dict()
        try:
            query = _filtered_bookings(args)
        except ValueError:
            return APIResponse.validation_error({'status': 'Unknown booking status'})

        content = bookings_to_csv(query.all())

        filename = f"bookings_{utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
        return Response(
            content,
            mimetype='text/csv',
            headers={'Content-Disposition': f'attachment; filename={filename}'}
        )

    except Exception as e:
        current_app.logger.error(f"Export bookings error: {str(e)}")
        return APIResponse.error("Failed to export bookings")


@admin_bp.route('/bookings/<booking_id>', methods=['GET'])
@admin_required()
def get_admin_booking(booking_id):
    """Get detailed booking information"""
    try:
        booking = db.session.get(Booking, booking_id)
        if not booking:
            return APIResponse.not_found("Booking not found")

        booking_data = booking.to_dict()
        booking_data['submittedTotalPrice'] = (
            float(booking.submitted_total_price) if booking.submitted_total_price is not None else None
        )
        return APIResponse.success({'booking': booking_data})

    except Exception as e:
        current_app.logger.error(f"Get booking error: {str(e)}")
        return APIResponse.error("Failed to fetch booking details")


@admin_bp.route('/bookings/<booking_id>', methods=['PATCH'])
@admin_required('admin')
def update_booking(booking_id):
    """Update booking status or notes. Prices are never edited here."""
    try:
        booking = db.session.get(Booking, booking_id)
        if not booking:
            return APIResponse.not_found("Booking not found")

        data = request.get_json(silent=True) or {}
        is_valid, errors, cleaned_data = AdminSchemas.validate_booking_update(data)

        if not is_valid:
            return APIResponse.validation_error(errors)

        before = {'status': booking.status.value, 'notes': booking.notes}
        for key, value in cleaned_data.items():
            setattr(booking, key, value)

        db.session.commit()

        AuditLogger.log_action(
            user_id=get_jwt_identity(),
            action='booking_updated',
            entity_type='booking',
            entity_id=booking_id,
            description=f'Admin updated booking {booking.booking_reference}',
            changes={key: {'before': before.get(key), 'after': value} for key, value in cleaned_data.items()}
        )

        return APIResponse.success({
            'booking': booking.to_dict()
        }, message='Booking updated successfully')

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Update booking error: {str(e)}")
        return APIResponse.error("Failed to update booking")
