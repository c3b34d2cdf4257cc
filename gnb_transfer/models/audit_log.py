import uuid

from gnb_transfer.extensions import db
from gnb_transfer.utils.dates import utcnow, isoformat


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(100), index=True)  # JWT identity of the acting admin

    # Action details
    action = db.Column(db.String(100), nullable=False, index=True)
    entity_type = db.Column(db.String(50), index=True)  # tour, coupon, campaign_rule, settings, ...
    entity_id = db.Column(db.String(36))

    # Details
    description = db.Column(db.Text)
    changes = db.Column(db.JSON)  # Before/after values

    # Request info
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'action': self.action,
            'entityType': self.entity_type,
            'entityId': self.entity_id,
            'description': self.description,
            'changes': self.changes,
            'ipAddress': self.ip_address,
            'userAgent': self.user_agent,
            'createdAt': isoformat(self.created_at),
        }
