import re
import uuid
from decimal import Decimal

from gnb_transfer.extensions import db
from gnb_transfer.models.enums import TourCategory
from gnb_transfer.utils.dates import utcnow, isoformat


class Tour(db.Model):
    __tablename__ = 'tours'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(200), nullable=False, index=True)
    slug = db.Column(db.String(200), unique=True, index=True)
    description = db.Column(db.Text, nullable=False, default='')

    category = db.Column(db.Enum(TourCategory), default=TourCategory.TRANSFER, nullable=False, index=True)
    location = db.Column(db.String(100), index=True)  # city the campaign matcher compares against

    # Pricing
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration = db.Column(db.Integer, nullable=False, default=1)
    discount = db.Column(db.Numeric(5, 2), default=Decimal('0'), nullable=False)  # percent, 0-100

    # Campaign state, owned by the campaign matcher
    is_campaign = db.Column(db.Boolean, default=False, nullable=False, index=True)
    campaign_rule_id = db.Column(db.String(36), db.ForeignKey('campaign_rules.id', ondelete='SET NULL'))

    active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    available_seats = db.Column(db.Integer)
    image = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    bookings = db.relationship('Booking', backref='tour', lazy='dynamic')
    campaign_rule = db.relationship('CampaignRule', foreign_keys=[campaign_rule_id])

    def __init__(self, **kwargs):
        super(Tour, self).__init__(**kwargs)
        if not self.slug and self.title:
            self.slug = self.slugify(self.title)

    @staticmethod
    def slugify(title: str) -> str:
        slug = re.sub(r'[^a-z0-9\s-]', '', title.lower())
        slug = re.sub(r'\s+', '-', slug.strip())
        return re.sub(r'-+', '-', slug)[:100]

    @property
    def discounted_price(self) -> Decimal:
        from gnb_transfer.services.pricing import PriceCalculator
        return PriceCalculator.effective_base(self.price, self.discount)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'category': self.category.value if self.category else None,
            'location': self.location,
            'price': float(self.price) if self.price is not None else 0.0,
            'discount': float(self.discount or 0),
            'discountedPrice': float(self.discounted_price),
            'isCampaign': self.is_campaign,
            'campaignRuleId': self.campaign_rule_id,
            'duration': self.duration,
            'active': self.active,
            'availableSeats': self.available_seats,
            'image': self.image,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
