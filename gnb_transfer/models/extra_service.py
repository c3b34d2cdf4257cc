import re
import uuid
from decimal import Decimal

from gnb_transfer.extensions import db
from gnb_transfer.models.enums import PriceType
from gnb_transfer.utils.dates import utcnow


class ExtraService(db.Model):
    """Optional paid add-on (child seat, meet-and-greet, ...)"""
    __tablename__ = 'extra_services'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.String(500))

    price = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal('0'))
    price_type = db.Column(db.Enum(PriceType), default=PriceType.FIXED, nullable=False)
    max_quantity = db.Column(db.Integer, default=10, nullable=False)

    active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    sort_order = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_per_unit(self) -> bool:
        return self.price_type == PriceType.PER_UNIT

    @staticmethod
    def code_from_key(key: str) -> str:
        """Map a form key such as ``meetAndGreet`` or ``child-seat`` to ``MEET_AND_GREET``"""
        key = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', key.strip())
        return re.sub(r'[\s\-]+', '_', key).upper()

    @classmethod
    def get_active_services(cls):
        return cls.query.filter_by(active=True).order_by(cls.sort_order.asc(), cls.name.asc()).all()

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'price': float(self.price),
            'priceType': self.price_type.value if self.price_type else None,
            'maxQuantity': self.max_quantity,
            'active': self.active,
            'sortOrder': self.sort_order,
        }
