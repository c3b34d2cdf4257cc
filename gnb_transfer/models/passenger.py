import uuid

from gnb_transfer.extensions import db
from gnb_transfer.models.enums import PassengerType
from gnb_transfer.utils.dates import utcnow


class Passenger(db.Model):
    __tablename__ = 'passengers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'), nullable=False, index=True)

    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    passenger_type = db.Column(db.Enum(PassengerType), default=PassengerType.ADULT, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'type': self.passenger_type.value if self.passenger_type else None,
        }
