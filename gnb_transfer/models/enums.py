from enum import Enum


class TourCategory(Enum):
    TRANSFER = 'transfer'
    TOUR = 'tour'
    VIP = 'vip'
    AIRPORT = 'airport'
    CITY = 'city'
    EXCURSION = 'excursion'
    PACKAGE = 'package'


class DiscountType(Enum):
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class ConditionType(Enum):
    CITY = 'city'
    TOUR_TYPE = 'tourType'
    DAY_OF_WEEK = 'dayOfWeek'
    DATE = 'date'
    BOOKING_COUNT = 'bookingCount'


class PriceType(Enum):
    FIXED = 'fixed'
    PER_UNIT = 'per_unit'


class BookingStatus(Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'
    PAID = 'paid'


class PaymentMethod(Enum):
    CASH = 'cash'
    CREDIT_CARD = 'credit_card'
    STRIPE = 'stripe'


class PassengerType(Enum):
    ADULT = 'adult'
    CHILD = 'child'
    INFANT = 'infant'


class SiteStatus(Enum):
    ONLINE = 'online'
    MAINTENANCE = 'maintenance'
