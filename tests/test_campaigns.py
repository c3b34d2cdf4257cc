import pytest
import threading
import time
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

from gnb_transfer import create_app, start_campaign_scheduler
from gnb_transfer.models import Booking, CampaignRule, Tour
from gnb_transfer.models.enums import BookingStatus, ConditionType, TourCategory
from gnb_transfer.services import campaigns
from gnb_transfer.services.campaigns import (
    CampaignMatcher, CampaignRunResult, CampaignScheduler, apply_active_campaigns, day_matches
)
from gnb_transfer.utils.dates import utcnow
from config import Config

# A Wednesday
NOW = datetime(2025, 6, 18, 12, 0, 0)


@pytest.fixture
def make_rule(db):
    def _make(**kwargs):
        data = {
            'name': 'Istanbul Promotion',
            'condition_type': ConditionType.CITY,
            'target': 'Istanbul',
            'discount_rate': Decimal('20'),
            'start_date': NOW - timedelta(days=1),
            'end_date': NOW + timedelta(days=7),
        }
        data.update(kwargs)
        rule = CampaignRule(**data)
        db.session.add(rule)
        db.session.commit()
        return rule
    return _make


def reload(db, tour):
    db.session.expire_all()
    return db.session.get(Tour, tour.id)


def add_bookings(db, tour, count, status=BookingStatus.CONFIRMED):
    for i in range(count):
        db.session.add(Booking(
            name=f'Guest {i}',
            email=f'guest{i}@example.com',
            tour_id=tour.id,
            date=NOW.date(),
            base_price=tour.price,
            guest_subtotal=tour.price,
            total_price=tour.price,
            status=status,
        ))
    db.session.commit()


class TestApplyActiveCampaigns:

    def test_city_match_is_case_insensitive(self, app, db, make_tour, make_rule):
        tour = make_tour(location='istanbul')
        rule = make_rule()

        result = apply_active_campaigns(now=NOW)

        tour = reload(db, tour)
        assert tour.discount == Decimal('20.00')
        assert tour.is_campaign is True
        assert tour.campaign_rule_id == rule.id
        assert result.tours_updated == 1
        assert result.active_campaigns == 1

    def test_second_run_changes_nothing(self, app, db, make_tour, make_rule):
        tour = make_tour()
        make_rule()

        apply_active_campaigns(now=NOW)
        first = reload(db, tour)
        state = (first.discount, first.is_campaign, first.campaign_rule_id, first.updated_at)

        result = apply_active_campaigns(now=NOW + timedelta(minutes=5))

        second = reload(db, tour)
        assert result.tours_updated == 0
        assert result.tours_discounted == 1
        assert (second.discount, second.is_campaign, second.campaign_rule_id, second.updated_at) == state

    def test_highest_rate_wins(self, app, db, make_tour, make_rule):
        tour = make_tour(category=TourCategory.VIP)
        make_rule(name='City', discount_rate=Decimal('10'))
        best = make_rule(name='VIP', condition_type=ConditionType.TOUR_TYPE, target='VIP', discount_rate=Decimal('25'))

        apply_active_campaigns(now=NOW)

        tour = reload(db, tour)
        assert tour.discount == Decimal('25.00')
        assert tour.campaign_rule_id == best.id

    def test_equal_rates_go_to_older_rule(self, app, db, make_tour, make_rule):
        tour = make_tour()
        older = make_rule(name='Older', created_at=NOW - timedelta(days=3))
        make_rule(name='Newer', condition_type=ConditionType.DAY_OF_WEEK, target='wednesday',
                  created_at=NOW - timedelta(days=1))

        apply_active_campaigns(now=NOW)

        assert reload(db, tour).campaign_rule_id == older.id

    def test_unmatched_campaign_tour_is_reset(self, app, db, make_tour, make_rule):
        tour = make_tour()
        rule = make_rule()
        apply_active_campaigns(now=NOW)

        rule.end_date = NOW + timedelta(hours=1)
        db.session.commit()

        result = apply_active_campaigns(now=NOW + timedelta(days=1))

        tour = reload(db, tour)
        assert tour.discount == Decimal('0.00')
        assert tour.is_campaign is False
        assert tour.campaign_rule_id is None
        assert result.tours_updated == 1
        assert result.active_campaigns == 0

    def test_manual_discount_is_left_alone(self, app, db, make_tour, make_rule):
        tour = make_tour(location='Antalya', discount=Decimal('12'))
        make_rule()

        apply_active_campaigns(now=NOW)

        tour = reload(db, tour)
        assert tour.discount == Decimal('12.00')
        assert tour.is_campaign is False

    def test_inactive_and_out_of_window_rules_are_ignored(self, app, db, make_tour, make_rule):
        tour = make_tour()
        make_rule(active=False)
        make_rule(name='Future', start_date=NOW + timedelta(days=1), end_date=NOW + timedelta(days=5))

        result = apply_active_campaigns(now=NOW)

        assert result.active_campaigns == 0
        assert reload(db, tour).is_campaign is False

    def test_day_of_week_and_date(self, app, db, make_tour, make_rule):
        tour = make_tour(location='Cappadocia')
        make_rule(name='Midweek', condition_type=ConditionType.DAY_OF_WEEK, target='Wed', discount_rate=Decimal('5'))
        make_rule(name='Today', condition_type=ConditionType.DATE, target='2025-06-18', discount_rate=Decimal('8'))

        apply_active_campaigns(now=NOW)
        assert reload(db, tour).discount == Decimal('8.00')

        result = apply_active_campaigns(now=NOW + timedelta(days=1))
        assert reload(db, tour).is_campaign is False
        assert result.tours_updated == 1

    def test_booking_count_ignores_cancelled(self, app, db, make_tour, make_rule):
        busy = make_tour(title='Busy', location='Antalya')
        quiet = make_tour(title='Quiet', location='Antalya')
        add_bookings(db, busy, 3)
        add_bookings(db, quiet, 2)
        add_bookings(db, quiet, 5, status=BookingStatus.CANCELLED)
        make_rule(name='Popular', condition_type=ConditionType.BOOKING_COUNT, target='3', discount_rate=Decimal('5'))

        apply_active_campaigns(now=NOW)

        assert reload(db, busy).discount == Decimal('5.00')
        assert reload(db, quiet).is_campaign is False

    def test_applied_count_counts_newly_applied_tours(self, app, db, make_tour, make_rule):
        make_tour(title='One')
        make_tour(title='Two')
        rule = make_rule()

        apply_active_campaigns(now=NOW)
        apply_active_campaigns(now=NOW)

        db.session.expire_all()
        assert db.session.get(CampaignRule, rule.id).applied_count == 2

    def test_failing_tour_does_not_stop_the_run(self, app, db, make_tour, make_rule):
        make_tour(title='First')
        make_tour(title='Second')
        make_rule()

        original_execute = db.session.execute
        calls = {'count': 0}

        def flaky_execute(statement, *args, **kwargs):
            if getattr(statement, 'table', None) is not None and statement.table.name == 'tours':
                calls['count'] += 1
                if calls['count'] == 1:
                    raise RuntimeError('database hiccup')
            return original_execute(statement, *args, **kwargs)

        with patch.object(db.session, 'execute', side_effect=flaky_execute):
            result = apply_active_campaigns(now=NOW)

        assert result.tours_failed == 1
        assert result.tours_updated == 1


class TestCampaignMatcher:

    @pytest.mark.parametrize('target,expected', [
        ('Wednesday', True), ('wed', True), ('WEDNESDAY', True), ('3', True), ('Thursday', False),
    ])
    def test_day_matches(self, target, expected):
        assert day_matches(target, NOW) is expected

    def test_bad_targets_never_match(self, app, make_tour):
        tour = make_tour()
        date_rule = CampaignRule(name='Bad', condition_type=ConditionType.DATE, target='not-a-date',
                                 discount_rate=Decimal('10'), start_date=NOW, end_date=NOW)
        count_rule = CampaignRule(name='Bad', condition_type=ConditionType.BOOKING_COUNT, target='many',
                                  discount_rate=Decimal('10'), start_date=NOW, end_date=NOW)

        matcher = CampaignMatcher([date_rule, count_rule])

        assert matcher.best_match(tour, NOW) is None


class TestRunSerialization:

    def test_second_run_waits_for_the_first(self, app):
        entered = threading.Event()

        def fake_apply(now):
            entered.set()
            return CampaignRunResult()

        with patch('gnb_transfer.services.campaigns._apply', side_effect=fake_apply):
            with campaigns._run_lock:
                worker = threading.Thread(target=apply_active_campaigns, kwargs={'now': NOW})
                worker.start()
                entered_while_held = entered.wait(timeout=0.2)
            worker.join(timeout=5)

        assert entered_while_held is False
        assert entered.is_set()
        assert worker.is_alive() is False


class TestCampaignScheduler:

    def test_runs_on_start_and_stops(self, app):
        ran = threading.Event()

        def fake_apply():
            ran.set()
            return CampaignRunResult(active_campaigns=1, tours_updated=2)

        with patch('gnb_transfer.services.campaigns.apply_active_campaigns', side_effect=fake_apply):
            scheduler = CampaignScheduler(app, interval=3600)
            scheduler.start()
            assert ran.wait(timeout=5)
            scheduler.stop(timeout=5)

        assert scheduler.running is False
        assert scheduler.last_result.tours_updated == 2

    def test_failed_tick_keeps_thread_alive(self, app):
        calls = []

        def failing_apply():
            calls.append(1)
            raise RuntimeError('boom')

        with patch('gnb_transfer.services.campaigns.apply_active_campaigns', side_effect=failing_apply):
            scheduler = CampaignScheduler(app, interval=0.05)
            scheduler.start()
            deadline = utcnow() + timedelta(seconds=5)
            while len(calls) < 2 and utcnow() < deadline:
                time.sleep(0.05)
            still_running = scheduler.running
            scheduler.stop(timeout=5)

        assert len(calls) >= 2
        assert still_running is True

    def test_not_started_in_testing(self, app):
        assert 'campaign_scheduler' not in app.extensions


class TestSchedulerStartup:

    class ServingConfig(Config):
        TESTING = False
        SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
        JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
        CAMPAIGN_SCHEDULER_ENABLED = True
        CAMPAIGN_SCHEDULER_INTERVAL = 3600

    def test_factory_does_not_start_scheduler(self):
        with patch.object(CampaignScheduler, 'start') as start:
            app = create_app(self.ServingConfig)

        start.assert_not_called()
        assert 'campaign_scheduler' not in app.extensions

    def test_entry_point_starts_one_scheduler(self):
        app = create_app(self.ServingConfig)

        with patch.object(CampaignScheduler, 'start') as start:
            scheduler = start_campaign_scheduler(app)
            again = start_campaign_scheduler(app)

        start.assert_called_once()
        assert again is scheduler
        assert app.extensions['campaign_scheduler'] is scheduler
        assert scheduler.interval == self.ServingConfig.CAMPAIGN_SCHEDULER_INTERVAL

    def test_disabled_when_testing(self, app):
        assert start_campaign_scheduler(app) is None
        assert 'campaign_scheduler' not in app.extensions

    def test_schedule_command(self, runner):
        with patch('gnb_transfer.db_init.cli.CampaignScheduler') as scheduler_cls:
            scheduler_cls.return_value.running = False
            scheduler_cls.return_value.interval = 120
            result = runner.invoke(args=['campaigns', 'schedule', '--interval', '120'])

        assert result.exit_code == 0
        assert scheduler_cls.call_args.kwargs['interval'] == 120
        scheduler_cls.return_value.start.assert_called_once()
        scheduler_cls.return_value.stop.assert_called_once()
        assert 'Campaign scheduler stopped' in result.output


class TestCampaignAdminAPI:

    def test_apply_endpoint(self, client, db, make_tour, make_rule, admin_headers):
        now = utcnow()
        tour = make_tour(location='ISTANBUL')
        make_rule(start_date=now - timedelta(days=1), end_date=now + timedelta(days=7))

        response = client.post('/api/admin/campaigns/apply', headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['data']['toursUpdated'] == 1
        assert data['data']['activeCampaigns'] == 1
        assert reload(db, tour).discount == Decimal('20.00')

    def test_apply_requires_admin(self, client, manager_headers):
        assert client.post('/api/admin/campaigns/apply').status_code == 401
        assert client.post('/api/admin/campaigns/apply', headers=manager_headers).status_code == 403

    def test_create_campaign(self, client, admin_headers):
        response = client.post('/api/admin/campaigns', headers=admin_headers, json={
            'name': 'Istanbul Week',
            'conditionType': 'city',
            'target': 'Istanbul',
            'discountRate': 20,
            'startDate': '2025-06-17T00:00:00Z',
            'endDate': '2025-06-25T00:00:00Z',
        })

        assert response.status_code == 201
        campaign = response.get_json()['data']['campaign']
        assert campaign['discountRate'] == 20.0
        assert campaign['conditionType'] == 'city'
        assert campaign['active'] is True

    @pytest.mark.parametrize('override,field', [
        ({'endDate': '2025-06-01T00:00:00Z'}, 'endDate'),
        ({'discountRate': 120}, 'discountRate'),
        ({'conditionType': 'weather'}, 'conditionType'),
        ({'conditionType': 'dayOfWeek', 'target': 'Funday'}, 'target'),
        ({'conditionType': 'bookingCount', 'target': 'lots'}, 'target'),
    ])
    def test_create_campaign_validation(self, client, admin_headers, override, field):
        body = {
            'name': 'Broken',
            'conditionType': 'city',
            'target': 'Istanbul',
            'discountRate': 20,
            'startDate': '2025-06-17T00:00:00Z',
            'endDate': '2025-06-25T00:00:00Z',
        }
        body.update(override)

        response = client.post('/api/admin/campaigns', headers=admin_headers, json=body)

        assert response.status_code == 422
        assert field in response.get_json()['errors']

    def test_update_rejects_end_before_existing_start(self, client, make_rule, admin_headers):
        rule = make_rule()

        response = client.patch(f'/api/admin/campaigns/{rule.id}', headers=admin_headers, json={
            'endDate': (NOW - timedelta(days=3)).isoformat()
        })

        assert response.status_code == 422
        assert 'endDate' in response.get_json()['errors']

    def test_delete_campaign_resets_tours(self, client, db, make_tour, make_rule, admin_headers):
        tour = make_tour()
        rule = make_rule()
        rule_id = rule.id
        apply_active_campaigns(now=NOW)

        response = client.delete(f"/api/admin/campaigns/{rule_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['data']['toursReset'] == 1
        tour = reload(db, tour)
        assert tour.is_campaign is False
        assert tour.discount == Decimal('0.00')
        assert db.session.get(CampaignRule, rule_id) is None

    def test_list_campaigns(self, client, make_rule, manager_headers):
        make_rule(name='A')
        make_rule(name='B', active=False)

        response = client.get('/api/admin/campaigns?active=true', headers=manager_headers)

        assert response.status_code == 200
        data = response.get_json()['data']
        assert [c['name'] for c in data['campaigns']] == ['A']
        assert data['pagination']['totalItems'] == 1

    def test_cli_apply(self, runner, make_tour, make_rule):
        now = utcnow()
        make_tour()
        make_rule(start_date=now - timedelta(days=1), end_date=now + timedelta(days=1))

        result = runner.invoke(args=['campaigns', 'apply'])

        assert result.exit_code == 0
        assert '1 tours updated' in result.output
