"""
Settings Service
Single read/write entry point for site-wide switches: site status,
booking/payment kill switch and feature toggles
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from flask import current_app

from gnb_transfer.extensions import db
from gnb_transfer.models import Settings
from gnb_transfer.models.enums import SiteStatus

logger = logging.getLogger(__name__)

SYSTEM_PREFIX = 'system.'
FEATURE_PREFIX = 'feature.'
DEFAULT_KILL_SWITCH_MESSAGE = 'Emergency maintenance in progress. We apologize for the inconvenience.'

# field name -> (data type, default)
SYSTEM_FIELDS = {
    'site_status': ('string', SiteStatus.ONLINE.value),
    'maintenance_message': ('string', ''),
    'booking_enabled': ('bool', True),
    'payment_enabled': ('bool', True),
    'registrations_enabled': ('bool', True),
}


@dataclass(frozen=True)
class SystemSettings:
    site_status: str = SiteStatus.ONLINE.value
    maintenance_message: str = ''
    booking_enabled: bool = True
    payment_enabled: bool = True
    registrations_enabled: bool = True

    @property
    def in_maintenance(self) -> bool:
        return self.site_status == SiteStatus.MAINTENANCE.value

    @property
    def accepting_bookings(self) -> bool:
        return self.booking_enabled and not self.in_maintenance

    def to_dict(self):
        return {
            'siteStatus': self.site_status,
            'maintenanceMessage': self.maintenance_message,
            'bookingEnabled': self.booking_enabled,
            'paymentEnabled': self.payment_enabled,
            'registrationsEnabled': self.registrations_enabled,
        }


class SettingsService:
    """Loads SystemSettings from the settings table and caches them for ``ttl`` seconds"""

    def __init__(self, ttl: int = 30):
        self.ttl = ttl
        self._lock = threading.Lock()
        self._cached: Optional[SystemSettings] = None
        self._cached_at = 0.0

    def invalidate(self):
        with self._lock:
            self._cached = None
            self._cached_at = 0.0

    def _load(self) -> SystemSettings:
        stored = Settings.get_prefixed(SYSTEM_PREFIX)
        values = {}
        for field, (_, default) in SYSTEM_FIELDS.items():
            value = stored.get(SYSTEM_PREFIX + field)
            values[field] = default if value is None else value
        return SystemSettings(**values)

    def get_system_settings(self) -> SystemSettings:
        with self._lock:
            fresh = self._cached is not None and (time.monotonic() - self._cached_at) < self.ttl
            if fresh:
                return self._cached

        settings = self._load()
        with self._lock:
            self._cached = settings
            self._cached_at = time.monotonic()
        return settings

    def update_system_settings(self, **updates) -> SystemSettings:
        unknown = set(updates) - set(SYSTEM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown system settings: {', '.join(sorted(unknown))}")

        if 'site_status' in updates:
            # Raises ValueError for anything other than online/maintenance
            updates['site_status'] = SiteStatus(updates['site_status']).value

        for field, value in updates.items():
            data_type = SYSTEM_FIELDS[field][0]
            Settings.set_value(SYSTEM_PREFIX + field, value, data_type=data_type, commit=False)
        db.session.commit()

        self.invalidate()
        logger.info(f"System settings updated: {updates}")
        return self.get_system_settings()

    def activate_kill_switch(self, message: Optional[str] = None) -> SystemSettings:
        logger.warning('Kill switch activated: booking and payment disabled')
        return self.update_system_settings(
            site_status=SiteStatus.MAINTENANCE.value,
            booking_enabled=False,
            payment_enabled=False,
            maintenance_message=message or DEFAULT_KILL_SWITCH_MESSAGE,
        )

    def restore(self) -> SystemSettings:
        logger.info('System restored to normal operations')
        return self.update_system_settings(
            site_status=SiteStatus.ONLINE.value,
            booking_enabled=True,
            payment_enabled=True,
            maintenance_message='',
        )

    # ===== Feature toggles =====

    def get_features(self) -> Dict[str, bool]:
        stored = Settings.get_prefixed(FEATURE_PREFIX)
        return {key[len(FEATURE_PREFIX):]: bool(value) for key, value in stored.items()}

    def is_feature_enabled(self, feature_id: str, default: bool = False) -> bool:
        return bool(Settings.get_value(FEATURE_PREFIX + feature_id, default))

    def set_feature(self, feature_id: str, enabled: bool, description: Optional[str] = None) -> bool:
        Settings.set_value(FEATURE_PREFIX + feature_id, bool(enabled), data_type='bool', description=description)
        logger.info(f"Feature {feature_id} {'enabled' if enabled else 'disabled'}")
        return bool(enabled)


def get_settings_service() -> SettingsService:
    """The SettingsService bound to the current app"""
    service = current_app.extensions.get('settings_service')
    if service is None:
        service = SettingsService(ttl=current_app.config.get('SETTINGS_CACHE_TTL', 30))
        current_app.extensions['settings_service'] = service
    return service
