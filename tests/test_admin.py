"""
Tests for the admin API: catalog, coupon and booking management, toggles and the audit trail
Run with: pytest tests/test_admin.py -v
"""
import io
import json
import pytest
import pandas as pd
from datetime import timedelta
from decimal import Decimal

from gnb_transfer.models import AuditLog, Booking, CampaignRule, Coupon, ExtraService, Tour
from gnb_transfer.models.enums import BookingStatus, ConditionType
from gnb_transfer.utils.dates import utcnow


@pytest.fixture
def sample_booking(db, make_tour):
    tour = make_tour()
    booking = Booking(
        name='Jane Doe',
        email='jane@example.com',
        tour_id=tour.id,
        date=utcnow().date(),
        base_price=Decimal('100.00'),
        guest_subtotal=Decimal('100.00'),
        total_price=Decimal('100.00'),
        submitted_total_price=Decimal('90.00'),
    )
    db.session.add(booking)
    db.session.commit()
    return booking


class TestAdminAuth:
    """Role checks on the admin blueprint"""

    def test_missing_token(self, client):
        response = client.get('/api/admin/tours')
        assert response.status_code == 401

    def test_customer_forbidden(self, client, customer_headers):
        response = client.get('/api/admin/tours', headers=customer_headers)
        assert response.status_code == 403

    def test_manager_can_read_but_not_write(self, client, manager_headers):
        assert client.get('/api/admin/tours', headers=manager_headers).status_code == 200

        response = client.post('/api/admin/tours', headers=manager_headers, json={'title': 'X', 'price': 10})
        assert response.status_code == 403

    def test_superadmin_passes_admin_checks(self, client, superadmin_headers):
        response = client.post('/api/admin/tours', headers=superadmin_headers, json={'title': 'Root Tour', 'price': 10})
        assert response.status_code == 201


class TestTourManagement:

    def test_create_tour(self, client, admin_headers):
        response = client.post('/api/admin/tours', headers=admin_headers, json={
            'title': 'Princes Islands Tour',
            'category': 'tour',
            'location': 'Istanbul',
            'price': '65.50',
            'duration': 6,
        })

        assert response.status_code == 201
        tour = json.loads(response.data)['data']['tour']
        assert tour['slug'] == 'princes-islands-tour'
        assert tour['price'] == 65.5
        assert tour['isCampaign'] is False

    def test_duplicate_title_gets_unique_slug(self, client, make_tour, admin_headers):
        make_tour(title='Bosphorus Cruise')

        response = client.post('/api/admin/tours', headers=admin_headers, json={'title': 'Bosphorus Cruise', 'price': 80})

        assert response.status_code == 201
        assert response.get_json()['data']['tour']['slug'] != 'bosphorus-cruise'

    @pytest.mark.parametrize('body,field', [
        ({'price': 10}, 'title'),
        ({'title': 'No Price'}, 'price'),
        ({'title': 'Negative', 'price': -5}, 'price'),
        ({'title': 'Huge', 'price': 1e12}, 'price'),
        ({'title': 'Bad', 'price': 10, 'category': 'spaceflight'}, 'category'),
        ({'title': 'Bad', 'price': 10, 'discount': 101}, 'discount'),
    ])
    def test_create_tour_validation(self, client, admin_headers, body, field):
        response = client.post('/api/admin/tours', headers=admin_headers, json=body)

        assert response.status_code == 422
        assert field in response.get_json()['errors']

    def test_manual_discount_leaves_campaign(self, client, db, make_tour, admin_headers):
        now = utcnow()
        rule = CampaignRule(name='City', condition_type=ConditionType.CITY, target='Istanbul',
                            discount_rate=Decimal('20'), start_date=now, end_date=now + timedelta(days=1))
        db.session.add(rule)
        db.session.commit()
        tour = make_tour(discount=Decimal('20'), is_campaign=True, campaign_rule_id=rule.id)

        response = client.patch(f'/api/admin/tours/{tour.id}', headers=admin_headers, json={'discount': 5})

        assert response.status_code == 200
        data = response.get_json()['data']['tour']
        assert data['discount'] == 5.0
        assert data['isCampaign'] is False
        assert data['campaignRuleId'] is None

    def test_list_tours_filters(self, client, make_tour, manager_headers):
        make_tour(title='Cruise')
        make_tour(title='Old Cruise', active=False)
        make_tour(title='Antalya Transfer', location='Antalya')

        response = client.get('/api/admin/tours?active=true&search=cruise', headers=manager_headers)

        data = response.get_json()['data']
        assert [t['title'] for t in data['tours']] == ['Cruise']
        assert data['pagination']['totalItems'] == 1

    def test_delete_deactivates(self, client, db, make_tour, admin_headers):
        tour = make_tour()

        response = client.delete(f'/api/admin/tours/{tour.id}', headers=admin_headers)

        assert response.status_code == 200
        db.session.refresh(tour)
        assert tour.active is False

    def test_get_tour_detail(self, client, sample_booking, manager_headers):
        response = client.get(f'/api/admin/tours/{sample_booking.tour_id}', headers=manager_headers)

        tour = response.get_json()['data']['tour']
        assert tour['totalBookings'] == 1
        assert tour['campaignRule'] is None


class TestCouponManagement:

    def coupon_body(self, **overrides):
        now = utcnow()
        body = {
            'code': 'spring15',
            'discountType': 'percentage',
            'discountValue': 15,
            'minPurchaseAmount': 50,
            'usageLimit': 100,
            'validFrom': now.isoformat(),
            'validUntil': (now + timedelta(days=30)).isoformat(),
        }
        body.update(overrides)
        return body

    def test_create_coupon(self, client, admin_headers):
        response = client.post('/api/admin/coupons', headers=admin_headers, json=self.coupon_body())

        assert response.status_code == 201
        coupon = response.get_json()['data']['coupon']
        assert coupon['code'] == 'SPRING15'
        assert coupon['usageCount'] == 0

        stored = Coupon.query.filter_by(code='SPRING15').first()
        assert stored.created_by == 'admin-1'

    def test_duplicate_code(self, client, make_coupon, admin_headers):
        make_coupon(code='SPRING15')

        response = client.post('/api/admin/coupons', headers=admin_headers, json=self.coupon_body())

        assert response.status_code == 422
        assert response.get_json()['errors']['code'] == 'Coupon code already exists'

    @pytest.mark.parametrize('override,field', [
        ({'discountValue': 150}, 'discountValue'),
        ({'discountType': 'bogo'}, 'discountType'),
        ({'code': 'AB'}, 'code'),
        ({'validUntil': '2001-01-01T00:00:00'}, 'validUntil'),
        ({'usageLimit': 0}, 'usageLimit'),
        ({'usageLimit': float('inf')}, 'usageLimit'),
        ({'discountValue': float('inf')}, 'discountValue'),
    ])
    def test_create_coupon_validation(self, client, admin_headers, override, field):
        response = client.post('/api/admin/coupons', headers=admin_headers, json=self.coupon_body(**override))

        assert response.status_code == 422
        assert field in response.get_json()['errors']

    def test_fixed_coupon_may_exceed_hundred(self, client, admin_headers):
        body = self.coupon_body(code='FLAT150', discountType='fixed', discountValue=150)
        assert client.post('/api/admin/coupons', headers=admin_headers, json=body).status_code == 201

    def test_update_coupon(self, client, make_coupon, admin_headers):
        coupon = make_coupon()

        response = client.patch(f'/api/admin/coupons/{coupon.id}', headers=admin_headers, json={'usageLimit': 3})

        assert response.status_code == 200
        assert response.get_json()['data']['coupon']['usageLimit'] == 3

    def test_update_checks_stored_type(self, client, make_coupon, admin_headers):
        coupon = make_coupon()

        response = client.patch(f'/api/admin/coupons/{coupon.id}', headers=admin_headers, json={'discountValue': 120})

        assert response.status_code == 422

    def test_delete_unused_coupon(self, client, db, make_coupon, admin_headers):
        coupon = make_coupon()
        coupon_id = coupon.id

        response = client.delete(f'/api/admin/coupons/{coupon_id}', headers=admin_headers)

        assert response.status_code == 200
        assert db.session.get(Coupon, coupon_id) is None

    def test_delete_redeemed_coupon_deactivates(self, client, db, make_coupon, sample_booking, admin_headers):
        coupon = make_coupon()
        sample_booking.coupon_id = coupon.id
        db.session.commit()

        response = client.delete(f'/api/admin/coupons/{coupon.id}', headers=admin_headers)

        assert response.get_json()['message'] == 'Coupon deactivated successfully'
        db.session.refresh(coupon)
        assert coupon.active is False

    def test_coupon_detail(self, client, make_coupon, manager_headers):
        coupon = make_coupon(usage_limit=5, usage_count=2)

        response = client.get(f'/api/admin/coupons/{coupon.id}', headers=manager_headers)

        data = response.get_json()['data']['coupon']
        assert data['usageRemaining'] == 3
        assert data['totalBookings'] == 0


class TestExtraServiceManagement:

    def test_create_extra_service(self, client, admin_headers):
        response = client.post('/api/admin/extra-services', headers=admin_headers, json={
            'name': 'Airport Fast Track',
            'price': 25,
            'priceType': 'per_unit',
            'maxQuantity': 6,
        })

        assert response.status_code == 201
        service = response.get_json()['data']['extraService']
        assert service['code'] == 'AIRPORT_FAST_TRACK'

    def test_duplicate_code(self, client, extra_services, admin_headers):
        response = client.post('/api/admin/extra-services', headers=admin_headers, json={
            'name': 'Another Seat', 'code': 'childSeat', 'price': 5
        })
        assert response.status_code == 422

    def test_update_price(self, client, extra_services, admin_headers):
        service = extra_services['CHILD_SEAT']

        response = client.patch(f'/api/admin/extra-services/{service.id}', headers=admin_headers, json={'price': 12})

        assert response.status_code == 200
        assert response.get_json()['data']['extraService']['price'] == 12.0

    def test_delete(self, client, db, extra_services, admin_headers):
        service_id = extra_services['VIP_LOUNGE'].id

        response = client.delete(f'/api/admin/extra-services/{service_id}', headers=admin_headers)

        assert response.status_code == 200
        assert db.session.get(ExtraService, service_id) is None


class TestToggles:
    """Optimistic toggle endpoints shared by every admin panel"""

    def test_toggle_tour_active(self, client, db, make_tour, admin_headers):
        tour = make_tour()

        response = client.patch(f'/api/admin/tours/{tour.id}/toggle', headers=admin_headers,
                                json={'field': 'active', 'value': False})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['previous'] is True
        assert data['current'] is False
        db.session.refresh(tour)
        assert tour.active is False

    def test_field_not_allowed(self, client, make_tour, admin_headers):
        tour = make_tour()

        response = client.patch(f'/api/admin/tours/{tour.id}/toggle', headers=admin_headers,
                                json={'field': 'is_campaign', 'value': True})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'toggle_failed'

    def test_value_must_be_boolean(self, client, make_coupon, admin_headers):
        coupon = make_coupon()

        response = client.patch(f'/api/admin/coupons/{coupon.id}/toggle', headers=admin_headers,
                                json={'field': 'active', 'value': 'no'})

        assert response.status_code == 400
        assert response.get_json()['data'] == {'field': 'active', 'current': True}

    def test_unknown_entity(self, client, admin_headers):
        response = client.patch('/api/admin/extra-services/missing/toggle', headers=admin_headers,
                                json={'field': 'active', 'value': False})
        assert response.status_code == 404

    def test_disabling_campaign_resets_tours(self, client, db, make_tour, admin_headers):
        now = utcnow()
        rule = CampaignRule(name='City', condition_type=ConditionType.CITY, target='Istanbul',
                            discount_rate=Decimal('20'), start_date=now, end_date=now + timedelta(days=1))
        db.session.add(rule)
        db.session.commit()
        tour = make_tour(discount=Decimal('20'), is_campaign=True, campaign_rule_id=rule.id)

        response = client.patch(f'/api/admin/campaigns/{rule.id}/toggle', headers=admin_headers,
                                json={'field': 'active', 'value': False})

        assert response.status_code == 200
        db.session.expire_all()
        tour = db.session.get(Tour, tour.id)
        assert tour.is_campaign is False
        assert tour.discount == Decimal('0.00')

    def test_toggle_is_audited(self, client, make_coupon, admin_headers):
        coupon = make_coupon()

        client.patch(f'/api/admin/coupons/{coupon.id}/toggle', headers=admin_headers,
                     json={'field': 'active', 'value': False})

        log = AuditLog.query.filter_by(action='coupon_toggled').first()
        assert log.user_id == 'admin-1'
        assert log.changes == {'active': {'before': True, 'after': False}}


class TestBookingManagement:

    def test_list_bookings(self, client, sample_booking, manager_headers):
        response = client.get('/api/admin/bookings?search=jane', headers=manager_headers)

        data = response.get_json()['data']
        assert data['pagination']['totalItems'] == 1
        assert data['bookings'][0]['bookingReference'] == sample_booking.booking_reference

    def test_unknown_status_filter(self, client, manager_headers):
        response = client.get('/api/admin/bookings?status=lost', headers=manager_headers)
        assert response.status_code == 422

    def test_booking_detail_shows_submitted_total(self, client, sample_booking, manager_headers):
        response = client.get(f'/api/admin/bookings/{sample_booking.id}', headers=manager_headers)

        booking = response.get_json()['data']['booking']
        assert booking['submittedTotalPrice'] == 90.0
        assert booking['totalPrice'] == 100.0

    def test_update_status(self, client, db, sample_booking, admin_headers):
        response = client.patch(f'/api/admin/bookings/{sample_booking.id}', headers=admin_headers,
                                json={'status': 'confirmed'})

        assert response.status_code == 200
        db.session.refresh(sample_booking)
        assert sample_booking.status == BookingStatus.CONFIRMED

        log = AuditLog.query.filter_by(action='booking_updated').first()
        assert log.changes == {'status': {'before': 'pending', 'after': 'confirmed'}}

    def test_update_requires_changes(self, client, sample_booking, admin_headers):
        response = client.patch(f'/api/admin/bookings/{sample_booking.id}', headers=admin_headers, json={})
        assert response.status_code == 422

    def test_export_csv(self, client, sample_booking, manager_headers):
        response = client.get('/api/admin/bookings/export', headers=manager_headers)

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'attachment' in response.headers['Content-Disposition']
        lines = response.data.decode().strip().splitlines()
        assert lines[0].startswith('Reference,Status,Name')
        assert sample_booking.booking_reference in lines[1]


    def test_export_csv_columns(self, client, sample_booking, manager_headers):
        response = client.get('/api/admin/bookings/export', headers=manager_headers)

        frame = pd.read_csv(io.BytesIO(response.data))
        assert len(frame) == 1
        assert frame.loc[0, 'Reference'] == sample_booking.booking_reference
        assert frame.loc[0, 'Total'] == float(sample_booking.total_price)
        assert frame.loc[0, 'Adults'] == sample_booking.adults_count

    def test_export_csv_without_bookings(self, client, manager_headers):
        response = client.get('/api/admin/bookings/export', headers=manager_headers)

        assert response.status_code == 200
        lines = response.data.decode().strip().splitlines()
        assert len(lines) == 1
        assert lines[0].startswith('Reference,Status,Name')

class TestAuditLogs:

    def test_list_audit_logs(self, client, make_coupon, admin_headers, manager_headers):
        coupon = make_coupon()
        client.patch(f'/api/admin/coupons/{coupon.id}/toggle', headers=admin_headers,
                     json={'field': 'active', 'value': False})
        client.post('/api/admin/tours', headers=admin_headers, json={'title': 'Logged Tour', 'price': 10})

        response = client.get('/api/admin/audit-logs?entityType=tour', headers=manager_headers)

        data = response.get_json()['data']
        assert [log['action'] for log in data['logs']] == ['tour_created']
        assert data['logs'][0]['changes']['price'] == 10.0
