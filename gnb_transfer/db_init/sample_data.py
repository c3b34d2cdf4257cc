"""
Sample Data Generation
Creates a realistic catalog for development: Istanbul transfers and tours,
the standard extra services, a few discount codes and campaign rules
"""

from datetime import timedelta
from decimal import Decimal

from gnb_transfer.extensions import db
from gnb_transfer.models import CampaignRule, Coupon, ExtraService, Settings, Tour
from gnb_transfer.models.enums import ConditionType, DiscountType, PriceType, TourCategory
from gnb_transfer.services.settings import FEATURE_PREFIX, SYSTEM_FIELDS, SYSTEM_PREFIX
from gnb_transfer.utils.dates import utcnow

SAMPLE_TOURS = [
    {
        'title': 'Airport Transfer - Istanbul',
        'description': 'Private transfer between Istanbul Airport and your hotel.',
        'category': TourCategory.AIRPORT,
        'location': 'Istanbul',
        'price': Decimal('50.00'),
        'duration': 1,
    },
    {
        'title': 'City Tour - Istanbul Highlights',
        'description': 'Hagia Sophia, the Blue Mosque and the Grand Bazaar in one day.',
        'category': TourCategory.CITY,
        'location': 'Istanbul',
        'price': Decimal('120.00'),
        'duration': 8,
    },
    {
        'title': 'Bosphorus Cruise',
        'description': 'Sunset cruise between Europe and Asia.',
        'category': TourCategory.TOUR,
        'location': 'Istanbul',
        'price': Decimal('80.00'),
        'duration': 3,
    },
    {
        'title': 'Private VIP Transfer',
        'description': 'Mercedes Vito with a professional driver.',
        'category': TourCategory.VIP,
        'location': 'Istanbul',
        'price': Decimal('150.00'),
        'duration': 1,
    },
    {
        'title': 'Cappadocia Day Trip',
        'description': 'Flight, valleys and underground city with lunch included.',
        'category': TourCategory.EXCURSION,
        'location': 'Cappadocia',
        'price': Decimal('350.00'),
        'duration': 14,
    },
    {
        'title': 'Antalya Airport Transfer',
        'description': 'Transfer from Antalya Airport to Lara, Kundu and Belek hotels.',
        'category': TourCategory.TRANSFER,
        'location': 'Antalya',
        'price': Decimal('45.00'),
        'duration': 1,
    },
]

EXTRA_SERVICES = [
    {
        'code': 'CHILD_SEAT',
        'name': 'Child Seat',
        'description': 'For children aged 1-4',
        'price': Decimal('10.00'),
        'price_type': PriceType.PER_UNIT,
        'max_quantity': 10,
        'sort_order': 1,
    },
    {
        'code': 'BABY_SEAT',
        'name': 'Baby Seat',
        'description': 'For infants up to 12 months',
        'price': Decimal('10.00'),
        'price_type': PriceType.PER_UNIT,
        'max_quantity': 10,
        'sort_order': 2,
    },
    {
        'code': 'MEET_AND_GREET',
        'name': 'Meet & Greet',
        'description': 'Driver waits in the arrivals hall with a name sign',
        'price': Decimal('15.00'),
        'price_type': PriceType.FIXED,
        'max_quantity': 1,
        'sort_order': 3,
    },
    {
        'code': 'VIP_LOUNGE',
        'name': 'VIP Lounge',
        'description': 'Airport VIP lounge access',
        'price': Decimal('50.00'),
        'price_type': PriceType.FIXED,
        'max_quantity': 1,
        'sort_order': 4,
    },
]

DEFAULT_FEATURES = {
    'coupons': (True, 'Discount codes at checkout'),
    'campaigns': (True, 'Automatic campaign discounts'),
    'whatsapp_links': (True, 'WhatsApp contact links on bookings'),
}


def create_default_settings():
    """Create system settings and feature toggles that do not exist yet"""
    print("   Creating settings...")

    settings = []
    for field, (data_type, default) in SYSTEM_FIELDS.items():
        key = SYSTEM_PREFIX + field
        if Settings.query.filter_by(key=key).first():
            continue
        settings.append(Settings.set_value(key, default, data_type=data_type, commit=False))

    for feature_id, (enabled, description) in DEFAULT_FEATURES.items():
        key = FEATURE_PREFIX + feature_id
        if Settings.query.filter_by(key=key).first():
            continue
        settings.append(Settings.set_value(key, enabled, data_type='bool', description=description, commit=False))

    db.session.commit()

    print(f"   ✅ Created {len(settings)} settings")
    return settings


def create_extra_services():
    """Create the standard extra-service catalog"""
    print("   Creating extra services...")

    services = []
    for data in EXTRA_SERVICES:
        service = ExtraService.query.filter_by(code=data['code']).first()
        if service is None:
            service = ExtraService(**data)
            db.session.add(service)
        services.append(service)

    db.session.commit()

    print(f"   ✅ {len(services)} extra services available")
    return services


def create_sample_tours():
    """Create sample tours"""
    print("   Creating tours...")

    tours = []
    for data in SAMPLE_TOURS:
        if Tour.query.filter_by(title=data['title']).first():
            print(f"   ⏭️  Tour \"{data['title']}\" already exists, skipping")
            continue
        tour = Tour(**data)
        tours.append(tour)

    db.session.add_all(tours)
    db.session.commit()

    print(f"   ✅ Created {len(tours)} tours")
    return tours


def create_sample_coupons():
    """Create sample discount codes, one of them already expired"""
    print("   Creating coupons...")

    now = utcnow()
    coupons = [
        Coupon(
            code='WELCOME10',
            description='10% off your first booking',
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal('10'),
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=365),
            created_by='system',
        ),
        Coupon(
            code='SUMMER25',
            description='25% off summer bookings over 100, up to 100 off',
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal('25'),
            min_purchase_amount=Decimal('100'),
            max_discount_amount=Decimal('100'),
            usage_limit=100,
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=90),
            created_by='system',
        ),
        Coupon(
            code='FLAT20',
            description='20 off any booking over 50',
            discount_type=DiscountType.FIXED,
            discount_value=Decimal('20'),
            min_purchase_amount=Decimal('50'),
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=180),
            created_by='system',
        ),
        Coupon(
            code='EXPIRED10',
            description='Expired test code',
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal('10'),
            valid_from=now - timedelta(days=60),
            valid_until=now - timedelta(days=30),
            created_by='system',
        ),
    ]

    coupons = [c for c in coupons if not Coupon.query.filter_by(code=c.code).first()]
    db.session.add_all(coupons)
    db.session.commit()

    print(f"   ✅ Created {len(coupons)} coupons")
    return coupons


def create_sample_campaigns():
    """Create sample campaign rules; the first campaign run applies them"""
    print("   Creating campaign rules...")

    now = utcnow()
    campaigns = [
        CampaignRule(
            name='Istanbul Spring Promotion',
            description='15% off everything in Istanbul',
            condition_type=ConditionType.CITY,
            target='Istanbul',
            discount_rate=Decimal('15'),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=30),
        ),
        CampaignRule(
            name='VIP Weekend',
            description='20% off VIP transfers on Saturdays',
            condition_type=ConditionType.DAY_OF_WEEK,
            target='Saturday',
            discount_rate=Decimal('20'),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=60),
        ),
        CampaignRule(
            name='Popular Tours',
            description='5% off tours with 10 or more bookings',
            condition_type=ConditionType.BOOKING_COUNT,
            target='10',
            discount_rate=Decimal('5'),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=365),
        ),
    ]

    campaigns = [c for c in campaigns if not CampaignRule.query.filter_by(name=c.name).first()]
    db.session.add_all(campaigns)
    db.session.commit()

    print(f"   ✅ Created {len(campaigns)} campaign rules")
    return campaigns
