from flask import request, current_app

from gnb_transfer.api import api_bp
from gnb_transfer.api.schemas import BookingSchemas
from gnb_transfer.models import Booking
from gnb_transfer.services.bookings import BookingService, BookingServiceError
from gnb_transfer.utils.api_response import APIResponse
from gnb_transfer.utils.decorators import booking_enabled_required

# ===== BOOKING ENDPOINTS =====

def _service_error(e: BookingServiceError):
    if e.errors:
        return APIResponse.error(e.message, errors=e.errors, status_code=e.status_code, error_code=e.code)
    return APIResponse.error(e.message, status_code=e.status_code, error_code=e.code)


@api_bp.route('/bookings/quote', methods=['POST'])
@booking_enabled_required
def quote_booking():
    """Price a booking from catalog data without creating it"""
    try:
        data = request.get_json(silent=True) or {}

        is_valid, errors, cleaned = BookingSchemas.validate_quote(data)
        if not is_valid:
            return APIResponse.validation_error(errors)

        quote = BookingService(current_app.config).quote(cleaned)
        return APIResponse.success(data=quote.to_dict())

    except BookingServiceError as e:
        return _service_error(e)
    except Exception as e:
        current_app.logger.error(f"Quote booking error: {str(e)}")
        return APIResponse.error("Failed to price booking", status_code=500)


@api_bp.route('/bookings', methods=['POST'])
@booking_enabled_required
def create_booking():
    """
    Create a booking

    Prices are recomputed on the server. A client ``totalPrice`` is stored
    for auditing only. Every adult and child needs a first and last name.
    """
    try:
        data = request.get_json(silent=True) or {}

        is_valid, errors, cleaned = BookingSchemas.validate_booking_create(data)
        if not is_valid:
            return APIResponse.validation_error(errors)

        booking = BookingService(current_app.config).create_booking(cleaned)

        return APIResponse.success(
            data=booking.to_dict(),
            message='Booking created successfully',
            status_code=201
        )

    except BookingServiceError as e:
        return _service_error(e)
    except Exception as e:
        current_app.logger.error(f"Create booking error: {str(e)}")
        return APIResponse.error("Failed to create booking", status_code=500)


@api_bp.route('/bookings/<reference>', methods=['GET'])
def get_booking(reference):
    """Look up a booking by its reference (e.g. GNB-ABC123)"""
    try:
        booking = Booking.query.filter_by(booking_reference=reference.strip().upper()).first()
        if not booking:
            return APIResponse.not_found("Booking not found")

        return APIResponse.success(data=booking.to_dict())

    except Exception as e:
        current_app.logger.error(f"Get booking error: {str(e)}")
        return APIResponse.error("Failed to fetch booking", status_code=500)
