import pytest
from datetime import timedelta
from decimal import Decimal

from gnb_transfer import create_app
from gnb_transfer.extensions import db as _db
from gnb_transfer.models import Coupon, Tour
from gnb_transfer.models.enums import DiscountType, TourCategory
from gnb_transfer.utils.dates import utcnow
from config import Config


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    CAMPAIGN_SCHEDULER_ENABLED = False
    INFANTS_COUNT_TOWARD_PRICE = True
    COUPON_MAX_PERCENT_DISCOUNT = None
    SETTINGS_CACHE_TTL = 0


@pytest.fixture
def app():
    app = create_app(TestConfig)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def db(app):
    return _db


def _headers_for(role, identity):
    from flask_jwt_extended import create_access_token
    token = create_access_token(identity=identity, additional_claims={'role': role})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(app):
    return _headers_for('admin', 'admin-1')


@pytest.fixture
def manager_headers(app):
    return _headers_for('manager', 'manager-1')


@pytest.fixture
def superadmin_headers(app):
    return _headers_for('superadmin', 'root-1')


@pytest.fixture
def customer_headers(app):
    return _headers_for('customer', 'customer-1')


@pytest.fixture
def make_tour(db):
    def _make(**kwargs):
        data = {
            'title': 'Bosphorus Cruise',
            'description': 'Sunset cruise',
            'category': TourCategory.TOUR,
            'location': 'Istanbul',
            'price': Decimal('100.00'),
            'duration': 3,
        }
        data.update(kwargs)
        tour = Tour(**data)
        db.session.add(tour)
        db.session.commit()
        return tour
    return _make


@pytest.fixture
def make_coupon(db):
    def _make(**kwargs):
        now = utcnow()
        data = {
            'code': 'WELCOME10',
            'discount_type': DiscountType.PERCENTAGE,
            'discount_value': Decimal('10'),
            'valid_from': now - timedelta(days=1),
            'valid_until': now + timedelta(days=30),
        }
        data.update(kwargs)
        coupon = Coupon(**data)
        db.session.add(coupon)
        db.session.commit()
        return coupon
    return _make


@pytest.fixture
def extra_services(db):
    from gnb_transfer.db_init.sample_data import create_extra_services
    return {s.code: s for s in create_extra_services()}
