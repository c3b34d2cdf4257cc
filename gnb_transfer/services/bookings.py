"""
Booking Service
Prices and creates bookings from canonical tour, extra-service and coupon data
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from gnb_transfer.extensions import db
from gnb_transfer.models import Booking, ExtraService, Passenger, Tour
from gnb_transfer.services.coupons import (
    CouponError, CouponValidation, CouponValidator, UsageLimitReached, redeem_coupon
)
from gnb_transfer.services.pricing import (
    ExtraServiceSelection, GuestCounts, PriceBreakdown, PriceCalculator, quantize
)
from gnb_transfer.utils.whatsapp import build_whatsapp_link

logger = logging.getLogger(__name__)


class BookingServiceError(Exception):
    """Base exception for booking service errors"""
    code = 'booking_failed'
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class TourUnavailable(BookingServiceError):
    code = 'tour_not_found'
    status_code = 404


class InvalidExtraServices(BookingServiceError):
    code = 'validation_error'
    status_code = 422


class CouponRejected(BookingServiceError):
    """A coupon failed validation or lost the race for its last use"""

    def __init__(self, error: CouponError, status_code: Optional[int] = None):
        super().__init__(error.message)
        self.code = error.code
        self.status_code = status_code or error.status_code


@dataclass
class Quote:
    tour: Tour
    breakdown: PriceBreakdown
    coupon_validation: Optional[CouponValidation] = None

    @property
    def coupon(self):
        if self.coupon_validation and self.coupon_validation.valid:
            return self.coupon_validation.coupon
        return None

    def to_dict(self):
        data = self.breakdown.to_dict()
        data['tourId'] = self.tour.id
        data['tourTitle'] = self.tour.title
        data['isCampaign'] = self.tour.is_campaign
        if self.coupon_validation is not None:
            data['coupon'] = self.coupon_validation.to_dict()
        return data


class BookingService:
    """Service for quoting and creating bookings"""

    def __init__(self, config):
        """
        Args:
            config: Flask app config object
        """
        self.calculator = PriceCalculator.from_config(config)
        self.coupon_validator = CouponValidator.from_config(config)
        self.default_country_code = config.get('DEFAULT_PHONE_COUNTRY_CODE', '+90')

    @staticmethod
    def get_bookable_tour(tour_id: str) -> Tour:
        tour = db.session.get(Tour, tour_id)
        if not tour or not tour.active:
            raise TourUnavailable('Tour not found')
        return tour

    @staticmethod
    def resolve_extra_services(selections: Dict[str, Dict[str, Any]]) -> List[ExtraServiceSelection]:
        """
        Price the selected extras from the catalog.

        Raises:
            InvalidExtraServices: For unknown or inactive services, or a quantity over the maximum
        """
        if not selections:
            return []

        catalog = {s.code: s for s in ExtraService.query.filter(ExtraService.code.in_(list(selections))).all()}
        resolved = []
        errors = {}

        for code, selection in selections.items():
            field = f"extraServices.{selection.get('key', code)}"
            service = catalog.get(code)
            if not service or not service.active:
                errors[field] = 'Unknown extra service'
                continue
            if not selection.get('selected'):
                continue

            quantity = selection.get('quantity')
            if service.is_per_unit:
                quantity = quantity or 1
                if quantity > service.max_quantity:
                    errors[field] = f'Quantity cannot exceed {service.max_quantity}'
                    continue
            else:
                quantity = None

            resolved.append(ExtraServiceSelection(
                code=service.code,
                unit_price=service.price,
                selected=True,
                quantity=quantity,
                name=service.name,
            ))

        if errors:
            raise InvalidExtraServices('Validation failed', errors=errors)
        return resolved

    def quote(self, cleaned: Dict[str, Any]) -> Quote:
        """
        Price a booking request without side effects.

        An invalid coupon does not fail the quote; it is reported in the
        quote and contributes no discount.
        """
        tour = self.get_bookable_tour(cleaned['tour_id'])
        extras = self.resolve_extra_services(cleaned.get('extra_services') or {})
        guests = GuestCounts(
            adults=cleaned.get('adults_count', 1),
            children=cleaned.get('children_count', 0),
            infants=cleaned.get('infants_count', 0),
        )

        validation = None
        coupon_discount = None
        if cleaned.get('discount_code'):
            subtotal = self.calculator.subtotal(tour.price, tour.discount, guests, extras)
            validation = self.coupon_validator.validate(cleaned['discount_code'], subtotal, tour_id=tour.id)
            if validation.valid:
                coupon_discount = validation.discount_amount

        breakdown = self.calculator.compute(tour.price, tour.discount, guests, extras, coupon_discount)
        return Quote(tour=tour, breakdown=breakdown, coupon_validation=validation)

    def create_booking(self, cleaned: Dict[str, Any]) -> Booking:
        """
        Create a booking priced on the server.

        Raises:
            TourUnavailable, InvalidExtraServices: For bad references in the request
            CouponRejected: If the coupon is invalid or its last use was taken concurrently
        """
        quote = self.quote(cleaned)
        validation = quote.coupon_validation
        if validation is not None and not validation.valid:
            raise CouponRejected(validation.error)

        breakdown = quote.breakdown
        submitted = cleaned.get('submitted_total_price')
        if submitted is not None and quantize(submitted) != breakdown.total:
            logger.warning(
                f"Client total {quantize(submitted)} does not match server total {breakdown.total} "
                f"for tour {quote.tour.id}; using server total"
            )

        country_code = cleaned.get('phone_country_code') or self.default_country_code
        booking = Booking(
            name=cleaned['name'],
            email=cleaned['email'],
            phone=cleaned.get('phone'),
            phone_country_code=country_code,
            whatsapp_link=build_whatsapp_link(cleaned.get('phone'), country_code),
            tour_id=quote.tour.id,
            date=cleaned['date'],
            time=cleaned.get('time'),
            flight_number=cleaned.get('flight_number'),
            pickup_location=cleaned.get('pickup_location'),
            notes=cleaned.get('notes'),
            adults_count=cleaned['adults_count'],
            children_count=cleaned['children_count'],
            infants_count=cleaned['infants_count'],
            guests=cleaned['adults_count'] + cleaned['children_count'] + cleaned['infants_count'],
            extra_services=[e.to_dict() for e in breakdown.extras],
            extra_services_total=breakdown.extras_total,
            base_price=breakdown.base_price,
            discount_percent=breakdown.discount_percent,
            guest_subtotal=breakdown.guest_subtotal,
            discount_code=quote.coupon.code if quote.coupon else None,
            coupon_id=quote.coupon.id if quote.coupon else None,
            discount_amount=breakdown.coupon_discount,
            total_price=breakdown.total,
            submitted_total_price=submitted,
            payment_method=cleaned['payment_method'],
        )

        try:
            if quote.coupon:
                redeem_coupon(quote.coupon)

            db.session.add(booking)
            for passenger in cleaned.get('passengers', []):
                booking.passengers.append(Passenger(**passenger))

            db.session.commit()
        except UsageLimitReached as e:
            db.session.rollback()
            raise CouponRejected(e, status_code=409)
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Booking {booking.booking_reference} created: total {breakdown.total}")
        return booking
