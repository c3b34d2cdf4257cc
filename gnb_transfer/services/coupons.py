"""
Coupon Service
Validates discount codes against a booking amount and redeems them
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, update

from gnb_transfer.extensions import db
from gnb_transfer.models import Coupon
from gnb_transfer.models.enums import DiscountType
from gnb_transfer.services.pricing import HUNDRED, ZERO, quantize, to_decimal
from gnb_transfer.utils.dates import utcnow

logger = logging.getLogger(__name__)


class CouponError(Exception):
    """Base exception for coupon errors. ``code`` is what the client keys its message off."""
    code = 'coupon_invalid'
    status_code = 400
    default_message = 'Invalid discount code'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class CouponNotFound(CouponError):
    code = 'coupon_not_found'
    status_code = 404
    default_message = 'Invalid coupon code'


class CouponInactive(CouponError):
    code = 'coupon_inactive'
    default_message = 'This discount code is no longer active'


class CouponNotYetValid(CouponError):
    code = 'coupon_not_yet_valid'
    default_message = 'This discount code is not valid yet'


class CouponExpired(CouponError):
    code = 'coupon_expired'
    default_message = 'This discount code has expired'


class UsageLimitReached(CouponError):
    code = 'usage_limit_reached'
    default_message = 'This discount code has reached its usage limit'


class MinimumNotMet(CouponError):
    code = 'minimum_not_met'
    default_message = 'Minimum purchase amount not met for this code'


class CouponNotApplicable(CouponError):
    code = 'coupon_not_applicable'
    default_message = 'Coupon is not applicable to this tour'


@dataclass
class CouponValidation:
    valid: bool
    discount_amount: Decimal = ZERO
    booking_amount: Decimal = ZERO
    coupon: Optional[Coupon] = None
    error: Optional[CouponError] = None

    @property
    def final_amount(self) -> Decimal:
        return quantize(max(ZERO, self.booking_amount - self.discount_amount))

    def to_dict(self):
        data = {
            'valid': self.valid,
            'discountAmount': float(self.discount_amount),
        }
        if self.valid:
            data['finalAmount'] = float(self.final_amount)
            data['coupon'] = self.coupon.to_public_dict()
        elif self.error:
            data['reason'] = self.error.code
        return data


class CouponValidator:
    """Decide whether a code is redeemable and how much it takes off"""

    def __init__(self, max_percent_discount=None):
        # Global ceiling on percentage coupons, on top of each coupon's own cap
        self.max_percent_discount = to_decimal(max_percent_discount) if max_percent_discount else None

    @classmethod
    def from_config(cls, config):
        return cls(max_percent_discount=config.get('COUPON_MAX_PERCENT_DISCOUNT'))

    @staticmethod
    def find(code: str) -> Optional[Coupon]:
        normalized = Coupon.normalize_code(code or '')
        if not normalized:
            return None
        return Coupon.query.filter(func.upper(Coupon.code) == normalized).first()

    def check(self, coupon: Coupon, booking_amount, tour_id=None, now=None):
        """
        Raise the first rule the coupon breaks for this booking

        Raises:
            CouponError subclass describing the failed rule
        """
        now = now or utcnow()
        amount = to_decimal(booking_amount)

        if not coupon.active:
            raise CouponInactive()
        if coupon.valid_from and now < coupon.valid_from:
            raise CouponNotYetValid()
        if coupon.valid_until and now > coupon.valid_until:
            raise CouponExpired()
        if coupon.usage_limit is not None and (coupon.usage_count or 0) >= coupon.usage_limit:
            raise UsageLimitReached()

        minimum = to_decimal(coupon.min_purchase_amount)
        if amount < minimum:
            raise MinimumNotMet(f"Minimum purchase amount is {quantize(minimum)}")

        applicable = coupon.applicable_tours or []
        if applicable and (tour_id is None or str(tour_id) not in [str(t) for t in applicable]):
            raise CouponNotApplicable()

    def calculate_discount(self, coupon: Coupon, booking_amount) -> Decimal:
        amount = max(ZERO, to_decimal(booking_amount))
        value = max(ZERO, to_decimal(coupon.discount_value))

        if coupon.discount_type == DiscountType.PERCENTAGE:
            discount = amount * min(value, HUNDRED) / HUNDRED
            if self.max_percent_discount is not None:
                discount = min(discount, self.max_percent_discount)
        else:
            discount = value

        if coupon.max_discount_amount is not None:
            discount = min(discount, to_decimal(coupon.max_discount_amount))

        # Never discount below zero
        return quantize(min(discount, amount))

    def validate(self, code: str, booking_amount, tour_id=None, now=None) -> CouponValidation:
        """Dry-run check. Never touches usage counts, so it can be called repeatedly."""
        amount = quantize(booking_amount)
        coupon = self.find(code)

        if not coupon:
            return CouponValidation(valid=False, booking_amount=amount, error=CouponNotFound())

        try:
            self.check(coupon, amount, tour_id=tour_id, now=now)
        except CouponError as e:
            logger.info(f"Coupon {coupon.code} rejected: {e.code}")
            return CouponValidation(valid=False, booking_amount=amount, coupon=coupon, error=e)

        return CouponValidation(
            valid=True,
            discount_amount=self.calculate_discount(coupon, amount),
            booking_amount=amount,
            coupon=coupon
        )


def redeem_coupon(coupon: Coupon) -> int:
    """
    Count one use of a coupon with a conditional increment.

    Increments only while the coupon is active and still under its limit, in a
    single UPDATE, so two bookings racing for the last use cannot both win.
    Does not commit; the caller commits with the booking.

    Raises:
        UsageLimitReached: If no row qualified for the increment
    """
    result = db.session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            Coupon.active.is_(True),
            or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit)
        )
        .values(usage_count=Coupon.usage_count + 1)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        logger.warning(f"Coupon {coupon.code} redemption refused: usage limit reached")
        raise UsageLimitReached()

    db.session.expire(coupon, ['usage_count'])
    logger.info(f"Coupon {coupon.code} redeemed")
    return coupon.usage_count
