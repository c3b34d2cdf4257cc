import uuid

from gnb_transfer.extensions import db
from gnb_transfer.models.enums import ConditionType
from gnb_transfer.utils.dates import utcnow, isoformat


class CampaignRule(db.Model):
    """Admin-defined condition that discounts matching tours for a time window"""
    __tablename__ = 'campaign_rules'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)

    condition_type = db.Column(db.Enum(ConditionType), nullable=False, index=True)
    target = db.Column(db.String(200), nullable=False)  # e.g. "Istanbul", "vip", "Monday"
    discount_rate = db.Column(db.Numeric(5, 2), nullable=False)  # percent, 0-100

    active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    applied_count = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.Index('ix_campaign_rules_window', 'active', 'start_date', 'end_date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'conditionType': self.condition_type.value if self.condition_type else None,
            'target': self.target,
            'discountRate': float(self.discount_rate),
            'active': self.active,
            'startDate': isoformat(self.start_date),
            'endDate': isoformat(self.end_date),
            'appliedCount': self.applied_count,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
