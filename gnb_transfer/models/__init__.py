from gnb_transfer.models.tour import Tour
from gnb_transfer.models.coupon import Coupon
from gnb_transfer.models.campaign_rule import CampaignRule
from gnb_transfer.models.extra_service import ExtraService
from gnb_transfer.models.booking import Booking
from gnb_transfer.models.passenger import Passenger
from gnb_transfer.models.settings import Settings
from gnb_transfer.models.audit_log import AuditLog
