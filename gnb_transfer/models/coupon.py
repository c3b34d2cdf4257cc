import uuid
from decimal import Decimal

from gnb_transfer.extensions import db
from gnb_transfer.models.enums import DiscountType
from gnb_transfer.utils.dates import utcnow, isoformat


class Coupon(db.Model):
    __tablename__ = 'coupons'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = db.Column(db.String(20), unique=True, nullable=False, index=True)  # stored upper-case
    description = db.Column(db.String(200), default='')

    discount_type = db.Column(db.Enum(DiscountType), default=DiscountType.PERCENTAGE, nullable=False)
    discount_value = db.Column(db.Numeric(10, 2), nullable=False)
    min_purchase_amount = db.Column(db.Numeric(10, 2), default=Decimal('0'), nullable=False)
    max_discount_amount = db.Column(db.Numeric(10, 2))  # None means no cap

    usage_limit = db.Column(db.Integer)  # None means unlimited
    usage_count = db.Column(db.Integer, default=0, nullable=False)

    valid_from = db.Column(db.DateTime, default=utcnow, nullable=False)
    valid_until = db.Column(db.DateTime, nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False, index=True)

    applicable_tours = db.Column(db.JSON, default=list)  # empty means every tour
    created_by = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def __init__(self, **kwargs):
        super(Coupon, self).__init__(**kwargs)
        if self.code:
            self.code = self.normalize_code(self.code)

    @staticmethod
    def normalize_code(code: str) -> str:
        return code.strip().upper()

    @property
    def usage_remaining(self):
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - (self.usage_count or 0))

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'description': self.description,
            'discountType': self.discount_type.value if self.discount_type else None,
            'discountValue': float(self.discount_value),
            'minPurchaseAmount': float(self.min_purchase_amount or 0),
            'maxDiscountAmount': float(self.max_discount_amount) if self.max_discount_amount is not None else None,
            'usageLimit': self.usage_limit,
            'usageCount': self.usage_count,
            'validFrom': isoformat(self.valid_from),
            'validUntil': isoformat(self.valid_until),
            'active': self.active,
            'applicableTours': self.applicable_tours or [],
            'createdBy': self.created_by,
            'createdAt': isoformat(self.created_at),
        }

    def to_public_dict(self):
        return {
            'code': self.code,
            'description': self.description,
            'discountType': self.discount_type.value if self.discount_type else None,
            'discountValue': float(self.discount_value),
        }
