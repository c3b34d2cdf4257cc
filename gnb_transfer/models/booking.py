import random
import string
import uuid
from decimal import Decimal

from gnb_transfer.extensions import db
from gnb_transfer.models.enums import BookingStatus, PaymentMethod
from gnb_transfer.utils.dates import utcnow, isoformat


def _money(value):
    return float(value) if value is not None else 0.0


class Booking(db.Model):
    __tablename__ = 'bookings'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_reference = db.Column(db.String(20), unique=True, nullable=False, index=True)

    # Customer contact
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), nullable=False, index=True)
    phone = db.Column(db.String(30))
    phone_country_code = db.Column(db.String(6), default='+90')
    whatsapp_link = db.Column(db.String(200))

    # Trip details
    tour_id = db.Column(db.String(36), db.ForeignKey('tours.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(10))
    flight_number = db.Column(db.String(20))
    pickup_location = db.Column(db.String(200))

    # Guests
    adults_count = db.Column(db.Integer, default=1, nullable=False)
    children_count = db.Column(db.Integer, default=0, nullable=False)
    infants_count = db.Column(db.Integer, default=0, nullable=False)
    guests = db.Column(db.Integer, default=1, nullable=False)

    # Extras, frozen at booking time: [{code, name, quantity, unitPrice, total}]
    extra_services = db.Column(db.JSON, default=list)
    extra_services_total = db.Column(db.Numeric(10, 2), default=Decimal('0'), nullable=False)

    # Pricing, never recomputed once persisted
    base_price = db.Column(db.Numeric(10, 2), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), default=Decimal('0'), nullable=False)
    guest_subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    discount_code = db.Column(db.String(20))
    coupon_id = db.Column(db.String(36), db.ForeignKey('coupons.id'))
    discount_amount = db.Column(db.Numeric(10, 2), default=Decimal('0'), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    submitted_total_price = db.Column(db.Numeric(10, 2))  # what the client claimed

    payment_method = db.Column(db.Enum(PaymentMethod), default=PaymentMethod.CASH, nullable=False)
    status = db.Column(db.Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    notes = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    passengers = db.relationship('Passenger', backref='booking', lazy='dynamic', cascade='all, delete-orphan')
    coupon = db.relationship('Coupon')

    def __init__(self, **kwargs):
        super(Booking, self).__init__(**kwargs)
        if not self.booking_reference:
            self.booking_reference = self.generate_booking_reference()

    @staticmethod
    def generate_booking_reference():
        """Generate unique booking reference like GNB-ABC123"""
        letters = ''.join(random.choices(string.ascii_uppercase, k=3))
        numbers = ''.join(random.choices(string.digits, k=3))
        return f"GNB-{letters}{numbers}"

    def get_total_passengers(self):
        return self.adults_count + self.children_count + self.infants_count

    def to_dict(self, include_relations: bool = True):
        data = {
            'id': self.id,
            'bookingReference': self.booking_reference,
            'status': self.status.value if self.status else None,

            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'phoneCountryCode': self.phone_country_code,
            'whatsappLink': self.whatsapp_link,

            'tourId': self.tour_id,
            'tourTitle': self.tour.title if self.tour else None,
            'date': isoformat(self.date),
            'time': self.time,
            'flightNumber': self.flight_number,
            'pickupLocation': self.pickup_location,

            'adultsCount': self.adults_count,
            'childrenCount': self.children_count,
            'infantsCount': self.infants_count,
            'guests': self.guests,

            'extraServices': self.extra_services or [],
            'extraServicesTotal': _money(self.extra_services_total),
            'basePrice': _money(self.base_price),
            'discountPercent': _money(self.discount_percent),
            'guestSubtotal': _money(self.guest_subtotal),
            'discountCode': self.discount_code,
            'discountAmount': _money(self.discount_amount),
            'totalPrice': _money(self.total_price),

            'paymentMethod': self.payment_method.value if self.payment_method else None,
            'notes': self.notes,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

        if include_relations:
            data['passengers'] = [p.to_dict() for p in self.passengers.all()]

        return data
