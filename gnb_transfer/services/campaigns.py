"""
Campaign Service
Applies active campaign rules to tour discounts, on a schedule or on demand

A run loads the rules whose window contains ``now``, picks the highest
matching rate for every tour and writes each tour with a single UPDATE.
Tours that no longer match any rule lose the campaign discount they were
given. Runs are serialized by a process-wide lock.
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlalchemy import func, update

from gnb_transfer.extensions import db
from gnb_transfer.models import Booking, CampaignRule, Tour
from gnb_transfer.models.enums import BookingStatus, ConditionType
from gnb_transfer.services.pricing import ZERO, quantize
from gnb_transfer.utils.dates import parse_date, utcnow

logger = logging.getLogger(__name__)

DAY_NAMES = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

_run_lock = threading.Lock()


@dataclass
class TourState:
    id: str
    title: str
    location: Optional[str]
    category: Optional[str]
    discount: Decimal
    is_campaign: bool
    campaign_rule_id: Optional[str]

    @classmethod
    def from_tour(cls, tour: Tour):
        return cls(
            id=tour.id,
            title=tour.title,
            location=tour.location,
            category=tour.category.value if tour.category else None,
            discount=quantize(tour.discount),
            is_campaign=bool(tour.is_campaign),
            campaign_rule_id=tour.campaign_rule_id,
        )


@dataclass
class CampaignRunResult:
    active_campaigns: int = 0
    tours_updated: int = 0
    tours_discounted: int = 0
    tours_failed: int = 0

    def to_dict(self):
        return {
            'activeCampaigns': self.active_campaigns,
            'toursUpdated': self.tours_updated,
            'toursDiscounted': self.tours_discounted,
            'toursFailed': self.tours_failed,
        }


def _same_text(left, right) -> bool:
    if left is None or right is None:
        return False
    return str(left).strip().casefold() == str(right).strip().casefold()


def day_matches(target: str, now: datetime) -> bool:
    wanted = str(target).strip().lower()
    today = DAY_NAMES[now.weekday()]
    return wanted in (today, today[:3], str(now.isoweekday()))


def is_valid_day(target: str) -> bool:
    wanted = str(target).strip().lower()
    return any(wanted in (name, name[:3]) for name in DAY_NAMES) or wanted in [str(i) for i in range(1, 8)]


class CampaignMatcher:
    """Match tours against a fixed set of running campaign rules"""

    def __init__(self, rules: Iterable[CampaignRule], booking_counts: Optional[Dict[str, int]] = None):
        # Callers pass rules oldest first; ties on rate go to the older rule
        self.rules = list(rules)
        self.booking_counts = booking_counts or {}

    def matches(self, rule: CampaignRule, tour, now: datetime) -> bool:
        condition = rule.condition_type

        if condition == ConditionType.CITY:
            return _same_text(tour.location, rule.target)
        if condition == ConditionType.TOUR_TYPE:
            return _same_text(tour.category, rule.target)
        if condition == ConditionType.DAY_OF_WEEK:
            return day_matches(rule.target, now)
        if condition == ConditionType.DATE:
            try:
                return parse_date(rule.target) == now.date()
            except ValueError:
                logger.warning(f"Campaign '{rule.name}' has unparseable date target {rule.target!r}")
                return False
        if condition == ConditionType.BOOKING_COUNT:
            try:
                threshold = int(str(rule.target).strip())
            except ValueError:
                logger.warning(f"Campaign '{rule.name}' has non-numeric booking count {rule.target!r}")
                return False
            return self.booking_counts.get(tour.id, 0) >= threshold

        return False

    def best_match(self, tour, now: datetime) -> Optional[CampaignRule]:
        """Highest discount rate among matching rules"""
        best = None
        for rule in self.rules:
            if not self.matches(rule, tour, now):
                continue
            if best is None or rule.discount_rate > best.discount_rate:
                best = rule
        return best


def get_running_rules(now: datetime):
    return (
        CampaignRule.query
        .filter(
            CampaignRule.active.is_(True),
            CampaignRule.start_date <= now,
            CampaignRule.end_date >= now
        )
        .order_by(CampaignRule.created_at.asc(), CampaignRule.id.asc())
        .all()
    )


def count_bookings_by_tour() -> Dict[str, int]:
    rows = (
        db.session.query(Booking.tour_id, func.count(Booking.id))
        .filter(Booking.status != BookingStatus.CANCELLED)
        .group_by(Booking.tour_id)
        .all()
    )
    return {tour_id: count for tour_id, count in rows}


def apply_active_campaigns(now: Optional[datetime] = None) -> CampaignRunResult:
    """
    Bring every tour's campaign discount in line with the running rules.

    Partial success is expected: a tour that fails to update is logged and
    skipped. Running twice without rule changes leaves tours untouched the
    second time.
    """
    with _run_lock:
        return _apply(now or utcnow())


def _apply(now: datetime) -> CampaignRunResult:
    rules = get_running_rules(now)
    result = CampaignRunResult(active_campaigns=len(rules))

    needs_counts = any(r.condition_type == ConditionType.BOOKING_COUNT for r in rules)
    matcher = CampaignMatcher(rules, count_bookings_by_tour() if needs_counts else None)

    if not rules:
        logger.info('No active campaigns to apply')
    else:
        logger.info(f"Processing {len(rules)} active campaigns")

    states = [TourState.from_tour(t) for t in Tour.query.order_by(Tour.created_at.asc()).all()]
    newly_applied = Counter()

    for state in states:
        rule = matcher.best_match(state, now)

        if rule is not None:
            target = (quantize(rule.discount_rate), True, rule.id)
            result.tours_discounted += 1
        elif state.is_campaign:
            target = (quantize(ZERO), False, None)
        else:
            # Manual discounts on tours the matcher never touched stay as they are
            continue

        if (state.discount, state.is_campaign, state.campaign_rule_id) == target:
            continue

        try:
            db.session.execute(
                update(Tour)
                .where(Tour.id == state.id)
                .values(discount=target[0], is_campaign=target[1], campaign_rule_id=target[2], updated_at=now)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            result.tours_failed += 1
            logger.exception(f"Failed to apply campaign state to tour {state.id} ({state.title})")
            continue

        result.tours_updated += 1
        if rule is not None:
            newly_applied[rule.id] += 1
            logger.debug(f"Tour {state.id} now discounted {target[0]}% by campaign '{rule.name}'")
        else:
            logger.debug(f"Tour {state.id} campaign discount cleared")

    for rule_id, count in newly_applied.items():
        try:
            db.session.execute(
                update(CampaignRule)
                .where(CampaignRule.id == rule_id)
                .values(applied_count=CampaignRule.applied_count + count)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception(f"Failed to update applied count for campaign {rule_id}")

    logger.info(
        f"Campaign run finished: {result.tours_updated} updated, "
        f"{result.tours_discounted} discounted, {result.tours_failed} failed"
    )
    return result


def clear_rule_from_tours(rule_id: str) -> int:
    """Strip a deleted or disabled rule's discount from the tours it was applied to. Does not commit."""
    result = db.session.execute(
        update(Tour)
        .where(Tour.campaign_rule_id == rule_id)
        .values(discount=ZERO, is_campaign=False, campaign_rule_id=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


class CampaignScheduler:
    """
    Background thread that applies campaigns every ``interval`` seconds.

    Runs once right after ``start()``; ``stop()`` wakes the thread and joins it.
    """

    def __init__(self, app, interval: int = 3600, run_on_start: bool = True):
        self.app = app
        self.interval = interval
        self.run_on_start = run_on_start
        self._stop_event = threading.Event()
        self._thread = None
        self.last_result = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name='campaign-scheduler', daemon=True)
        self._thread.start()
        logger.info(f"Campaign scheduler started (every {self.interval}s)")

    def stop(self, timeout: Optional[float] = 5.0):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info('Campaign scheduler stopped')

    def trigger(self) -> CampaignRunResult:
        """Run the same job synchronously, e.g. from the admin endpoint or CLI"""
        with self.app.app_context():
            self.last_result = apply_active_campaigns()
            return self.last_result

    def _tick(self):
        logger.info('Running scheduled campaign rule check')
        try:
            self.trigger()
        except Exception:
            logger.exception('Scheduled campaign run failed')

    def _run(self):
        if self.run_on_start:
            self._tick()
        while not self._stop_event.wait(self.interval):
            self._tick()
