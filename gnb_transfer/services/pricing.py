"""
Pricing
Per-guest tour pricing with campaign discounts, extra services and coupons
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0')
HUNDRED = Decimal('100')
# Largest value a Numeric(10, 2) column holds
MAX_AMOUNT = Decimal('99999999.99')


def to_decimal(value) -> Decimal:
    """Coerce a number/str/None to Decimal, treating junk as zero"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps floats like 0.1 from dragging binary noise in
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return ZERO
    return result if result.is_finite() else ZERO


def clamp_amount(value) -> Decimal:
    """Bound a money value to what the database can store"""
    return max(-MAX_AMOUNT, min(MAX_AMOUNT, to_decimal(value)))


def quantize(value) -> Decimal:
    return clamp_amount(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass
class GuestCounts:
    adults: int = 1
    children: int = 0
    infants: int = 0

    def priced(self, include_infants: bool = True) -> int:
        total = max(0, self.adults) + max(0, self.children)
        if include_infants:
            total += max(0, self.infants)
        return total


@dataclass
class ExtraServiceSelection:
    code: str
    unit_price: Decimal
    selected: bool = True
    quantity: Optional[int] = None
    name: Optional[str] = None

    @property
    def total(self) -> Decimal:
        if not self.selected:
            return ZERO
        quantity = self.quantity or 1
        return clamp_amount(self.unit_price) * max(0, quantity)

    def to_dict(self):
        return {
            'code': self.code,
            'name': self.name,
            'quantity': self.quantity or 1,
            'unitPrice': float(quantize(self.unit_price)),
            'total': float(quantize(self.total)),
        }


@dataclass
class PriceBreakdown:
    base_price: Decimal
    discount_percent: Decimal
    effective_base: Decimal
    priced_guests: int
    guest_subtotal: Decimal
    extras_total: Decimal
    subtotal: Decimal
    coupon_discount: Decimal
    total: Decimal
    extras: List[ExtraServiceSelection] = field(default_factory=list)

    def to_dict(self):
        return {
            'basePrice': float(self.base_price),
            'discountPercent': float(self.discount_percent),
            'effectiveBase': float(self.effective_base),
            'pricedGuests': self.priced_guests,
            'guestSubtotal': float(self.guest_subtotal),
            'extraServices': [e.to_dict() for e in self.extras if e.selected],
            'extraServicesTotal': float(self.extras_total),
            'subtotal': float(self.subtotal),
            'discountAmount': float(self.coupon_discount),
            'totalPrice': float(self.total),
        }


class PriceCalculator:
    """Calculate booking totals. Pure: no database access, never raises for numeric input."""

    def __init__(self, infants_count_toward_price: bool = True):
        self.infants_count_toward_price = infants_count_toward_price

    @classmethod
    def from_config(cls, config):
        return cls(infants_count_toward_price=config.get('INFANTS_COUNT_TOWARD_PRICE', True))

    @staticmethod
    def effective_base(base_price, discount_percent=None) -> Decimal:
        """Base price after a campaign discount percentage"""
        base = max(ZERO, clamp_amount(base_price))
        percent = min(HUNDRED, max(ZERO, to_decimal(discount_percent)))
        if percent == ZERO:
            return quantize(base)
        return quantize(base * (HUNDRED - percent) / HUNDRED)

    @staticmethod
    def extras_total(extra_services: Iterable[ExtraServiceSelection]) -> Decimal:
        return quantize(sum((s.total for s in extra_services or []), ZERO))

    def subtotal(self, base_price, discount_percent, guests: GuestCounts,
                 extra_services: Iterable[ExtraServiceSelection] = ()) -> Decimal:
        """Amount a coupon is validated against: guests plus extras, before the coupon"""
        effective = self.effective_base(base_price, discount_percent)
        priced = guests.priced(self.infants_count_toward_price)
        return quantize(effective * priced + self.extras_total(extra_services))

    def compute(
        self,
        base_price,
        discount_percent,
        guests: GuestCounts,
        extra_services: Iterable[ExtraServiceSelection] = (),
        coupon_discount=None
    ) -> PriceBreakdown:
        extras = list(extra_services or [])
        effective = self.effective_base(base_price, discount_percent)
        priced = guests.priced(self.infants_count_toward_price)
        guest_subtotal = quantize(effective * priced)
        extras_total = self.extras_total(extras)
        subtotal = quantize(guest_subtotal + extras_total)
        # The coupon can take off at most the whole subtotal
        discount = max(ZERO, min(subtotal, quantize(coupon_discount)))
        total = max(ZERO, subtotal - discount)

        return PriceBreakdown(
            base_price=quantize(max(ZERO, clamp_amount(base_price))),
            discount_percent=min(HUNDRED, max(ZERO, to_decimal(discount_percent))),
            effective_base=effective,
            priced_guests=priced,
            guest_subtotal=guest_subtotal,
            extras_total=extras_total,
            subtotal=subtotal,
            coupon_discount=discount,
            total=quantize(total),
            extras=extras,
        )

    def compute_total(self, base_price, discount_percent, guests: GuestCounts,
                      extra_services: Iterable[ExtraServiceSelection] = (),
                      coupon_discount=None) -> Decimal:
        return self.compute(base_price, discount_percent, guests, extra_services, coupon_discount).total
