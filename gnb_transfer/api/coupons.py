from flask import request, current_app

from gnb_transfer.api import api_bp
from gnb_transfer.api.schemas import BookingSchemas
from gnb_transfer.services.coupons import CouponValidator
from gnb_transfer.utils.api_response import APIResponse


@api_bp.route('/coupons/validate', methods=['POST'])
def validate_coupon():
    """
    Check a discount code against a booking amount

    Body:
        code: Discount code (case-insensitive)
        bookingAmount: Amount the code is applied to
        tourId: Optional tour the booking is for

    Validation only; the code's usage count is not touched.
    """
    try:
        data = request.get_json(silent=True) or {}

        is_valid, errors, cleaned = BookingSchemas.validate_coupon_check(data)
        if not is_valid:
            return APIResponse.error(next(iter(errors.values())), errors=errors, status_code=400)

        validator = CouponValidator.from_config(current_app.config)
        result = validator.validate(cleaned['code'], cleaned['booking_amount'], tour_id=cleaned['tour_id'])

        if not result.valid:
            return APIResponse.error(
                result.error.message,
                status_code=result.error.status_code,
                error_code=result.error.code,
                data=result.to_dict()
            )

        return APIResponse.success(data=result.to_dict(), message='Discount code applied')

    except Exception as e:
        current_app.logger.error(f"Coupon validation error: {str(e)}")
        return APIResponse.error("Failed to validate discount code", status_code=500)
