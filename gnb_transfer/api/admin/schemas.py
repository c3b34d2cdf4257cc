"""
Admin API Validation Schemas
Handles request validation for all admin endpoints
"""
from typing import Dict, Any, Tuple, Optional
from datetime import datetime
from decimal import Decimal, InvalidOperation

from gnb_transfer.models.enums import (
    BookingStatus, ConditionType, DiscountType, PriceType, SiteStatus, TourCategory
)
from gnb_transfer.services.campaigns import is_valid_day
from gnb_transfer.services.pricing import HUNDRED, MAX_AMOUNT, ZERO, to_decimal
from gnb_transfer.utils.dates import parse_date, parse_datetime


def _parse_money(value, field, errors, allow_none=False):
    if value is None or value == '':
        if not allow_none:
            errors[field] = f'{field} is required'
        return None
    try:
        if isinstance(value, bool):
            raise InvalidOperation(value)
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise InvalidOperation(value)
    except InvalidOperation:
        errors[field] = f'{field} must be a number'
        return None
    if amount < 0:
        errors[field] = f'{field} cannot be negative'
        return None
    if amount > MAX_AMOUNT:
        errors[field] = f'{field} cannot exceed {MAX_AMOUNT}'
        return None
    return amount


def _parse_percent(value, field, errors):
    amount = _parse_money(value, field, errors)
    if amount is not None and amount > HUNDRED:
        errors[field] = f'{field} must be between 0 and 100'
        return None
    return amount


def _parse_when(value, field, errors):
    try:
        parsed = parse_datetime(value)
    except (ValueError, TypeError, OverflowError):
        errors[field] = f'Invalid {field} format. Use ISO 8601'
        return None
    if parsed is None:
        errors[field] = f'{field} is required'
    return parsed


def _parse_int(value, field, errors, minimum=0, allow_none=False):
    if value is None or value == '':
        if not allow_none:
            errors[field] = f'{field} is required'
        return None
    try:
        if isinstance(value, bool) or int(value) != float(value):
            raise ValueError(value)
        number = int(value)
    except (ValueError, TypeError, OverflowError):
        errors[field] = f'{field} must be a whole number'
        return None
    if number < minimum:
        errors[field] = f'{field} must be at least {minimum}'
        return None
    return number


class AdminSchemas:
    """Validation schemas for admin API endpoints"""

    # ===== Campaign Rule Schemas =====

    @staticmethod
    def _check_campaign_target(condition: ConditionType, target: str, errors: Dict[str, str]):
        if condition == ConditionType.DAY_OF_WEEK and not is_valid_day(target):
            errors['target'] = 'Target must be a day name such as Monday'
        elif condition == ConditionType.DATE:
            try:
                parse_date(target)
            except (ValueError, OverflowError):
                errors['target'] = 'Target must be a date in YYYY-MM-DD format'
        elif condition == ConditionType.BOOKING_COUNT:
            if not target.isdigit():
                errors['target'] = 'Target must be a whole number of bookings'
        elif condition == ConditionType.TOUR_TYPE:
            valid_types = [c.value for c in TourCategory]
            if target.lower() not in valid_types:
                errors['target'] = f'Tour type must be one of: {", ".join(valid_types)}'

    @staticmethod
    def validate_campaign_create(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """
        Validate campaign rule creation request

        Returns:
            (is_valid, errors, cleaned_data)
        """
        errors = {}
        cleaned_data = {}

        required_fields = ['name', 'conditionType', 'target', 'discountRate', 'startDate', 'endDate']
        for field in required_fields:
            if field not in data or data[field] is None or not str(data[field]).strip():
                errors[field] = f'{field} is required'

        if errors:
            return False, errors, cleaned_data

        cleaned_data['name'] = str(data['name']).strip()
        cleaned_data['target'] = str(data['target']).strip()

        try:
            cleaned_data['condition_type'] = ConditionType(str(data['conditionType']))
        except ValueError:
            valid_types = [c.value for c in ConditionType]
            errors['conditionType'] = f'Condition type must be one of: {", ".join(valid_types)}'

        rate = _parse_percent(data['discountRate'], 'discountRate', errors)
        if rate is not None:
            cleaned_data['discount_rate'] = rate

        start_date = _parse_when(data['startDate'], 'startDate', errors)
        end_date = _parse_when(data['endDate'], 'endDate', errors)
        if start_date and end_date:
            if end_date <= start_date:
                errors['endDate'] = 'End date must be after start date'
            cleaned_data['start_date'] = start_date
            cleaned_data['end_date'] = end_date

        if 'condition_type' in cleaned_data:
            AdminSchemas._check_campaign_target(cleaned_data['condition_type'], cleaned_data['target'], errors)

        if 'description' in data:
            cleaned_data['description'] = str(data['description']).strip() if data['description'] else None

        if 'active' in data:
            cleaned_data['active'] = bool(data['active'])

        return len(errors) == 0, errors, cleaned_data

    @staticmethod
    def validate_campaign_update(data: Dict[str, Any], current=None) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Validate campaign rule update request against the stored rule ``current``"""
        errors = {}
        cleaned_data = {}

        if 'name' in data:
            name = str(data['name'] or '').strip()
            if not name:
                errors['name'] = 'Name cannot be empty'
            else:
                cleaned_data['name'] = name

        if 'description' in data:
            cleaned_data['description'] = str(data['description']).strip() if data['description'] else None

        if 'conditionType' in data:
            try:
                cleaned_data['condition_type'] = ConditionType(str(data['conditionType']))
            except ValueError:
                valid_types = [c.value for c in ConditionType]
                errors['conditionType'] = f'Condition type must be one of: {", ".join(valid_types)}'

        if 'target' in data:
            target = str(data['target'] or '').strip()
            if not target:
                errors['target'] = 'Target cannot be empty'
            else:
                cleaned_data['target'] = target

        if 'discountRate' in data:
            rate = _parse_percent(data['discountRate'], 'discountRate', errors)
            if rate is not None:
                cleaned_data['discount_rate'] = rate

        if 'startDate' in data:
            start_date = _parse_when(data['startDate'], 'startDate', errors)
            if start_date:
                cleaned_data['start_date'] = start_date

        if 'endDate' in data:
            end_date = _parse_when(data['endDate'], 'endDate', errors)
            if end_date:
                cleaned_data['end_date'] = end_date

        if 'active' in data:
            cleaned_data['active'] = bool(data['active'])

        start = cleaned_data.get('start_date', current.start_date if current else None)
        end = cleaned_data.get('end_date', current.end_date if current else None)
        if start and end and end <= start and 'startDate' not in errors and 'endDate' not in errors:
            errors['endDate'] = 'End date must be after start date'

        condition = cleaned_data.get('condition_type', current.condition_type if current else None)
        target = cleaned_data.get('target', current.target if current else None)
        if condition and target and 'conditionType' not in errors:
            AdminSchemas._check_campaign_target(condition, target, errors)

        return len(errors) == 0, errors, cleaned_data

    # ===== Coupon Schemas =====

    @staticmethod
    def _clean_coupon_fields(data: Dict[str, Any], errors: Dict[str, str], cleaned_data: Dict[str, Any]):
        if 'code' in data:
            code = str(data['code'] or '').strip().upper()
            if len(code) < 3 or len(code) > 20:
                errors['code'] = 'Code must be between 3 and 20 characters'
            else:
                cleaned_data['code'] = code

        if 'description' in data:
            cleaned_data['description'] = str(data['description']).strip() if data['description'] else ''

        if 'discountType' in data:
            try:
                cleaned_data['discount_type'] = DiscountType(str(data['discountType']).lower())
            except ValueError:
                errors['discountType'] = 'Discount type must be one of: percentage, fixed'

        if 'discountValue' in data:
            value = _parse_money(data['discountValue'], 'discountValue', errors)
            if value is not None:
                cleaned_data['discount_value'] = value

        if 'minPurchaseAmount' in data:
            value = _parse_money(data['minPurchaseAmount'], 'minPurchaseAmount', errors, allow_none=True)
            cleaned_data['min_purchase_amount'] = value if value is not None else ZERO

        if 'maxDiscountAmount' in data:
            value = _parse_money(data['maxDiscountAmount'], 'maxDiscountAmount', errors, allow_none=True)
            cleaned_data['max_discount_amount'] = value

        if 'usageLimit' in data:
            cleaned_data['usage_limit'] = _parse_int(data['usageLimit'], 'usageLimit', errors, minimum=1, allow_none=True)

        if 'validFrom' in data:
            valid_from = _parse_when(data['validFrom'], 'validFrom', errors)
            if valid_from:
                cleaned_data['valid_from'] = valid_from

        if 'validUntil' in data:
            valid_until = _parse_when(data['validUntil'], 'validUntil', errors)
            if valid_until:
                cleaned_data['valid_until'] = valid_until

        if 'active' in data:
            cleaned_data['active'] = bool(data['active'])

        if 'applicableTours' in data:
            tours = data['applicableTours'] or []
            if not isinstance(tours, list):
                errors['applicableTours'] = 'Applicable tours must be a list of tour ids'
            else:
                cleaned_data['applicable_tours'] = [str(t) for t in tours]

    @staticmethod
    def _check_coupon_rules(cleaned_data: Dict[str, Any], errors: Dict[str, str], current=None):
        discount_type = cleaned_data.get('discount_type', current.discount_type if current else None)
        value = cleaned_data.get('discount_value', current.discount_value if current else None)
        if discount_type == DiscountType.PERCENTAGE and value is not None and to_decimal(value) > HUNDRED:
            errors['discountValue'] = 'Percentage discount cannot exceed 100'

        valid_from = cleaned_data.get('valid_from', current.valid_from if current else None)
        valid_until = cleaned_data.get('valid_until', current.valid_until if current else None)
        if valid_from and valid_until and valid_until <= valid_from and 'validUntil' not in errors:
            errors['validUntil'] = 'Expiration date must be after the start date'

    @staticmethod
    def validate_coupon_create(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Validate coupon creation request"""
        errors = {}
        cleaned_data = {}

        for field in ['code', 'discountType', 'discountValue', 'validUntil']:
            if field not in data or data[field] is None or not str(data[field]).strip():
                errors[field] = f'{field} is required'

        if errors:
            return False, errors, cleaned_data

        AdminSchemas._clean_coupon_fields(data, errors, cleaned_data)
        AdminSchemas._check_coupon_rules(cleaned_data, errors)

        return len(errors) == 0, errors, cleaned_data

    @staticmethod
    def validate_coupon_update(data: Dict[str, Any], current=None) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Validate coupon update request"""
        errors = {}
        cleaned_data = {}

        AdminSchemas._clean_coupon_fields(data, errors, cleaned_data)
        AdminSchemas._check_coupon_rules(cleaned_data, errors, current)

        return len(errors) == 0, errors, cleaned_data

    # ===== Tour Schemas =====

    @staticmethod
    def validate_tour_create(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Validate tour creation request"""
        errors = {}
        cleaned_data = {}

        for field in ['title', 'price']:
            if field not in data or data[field] is None or not str(data[field]).strip():
                errors[field] = f'{field} is required'

        if errors:
            return False, errors, cleaned_data

        is_valid, update_errors, cleaned_data = AdminSchemas.validate_tour_update(data)
        errors.update(update_errors)
        return len(errors) == 0, errors, cleaned_data

    @staticmethod
    def validate_tour_update(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Validate tour update request"""
        errors = {}
        cleaned_data = {}

        if 'title' in data:
            title = str(data['title'] or '').strip()
            if not title:
                errors['title'] = 'Title cannot be empty'
            elif len(title) > 200:
                errors['title'] = 'Title cannot exceed 200 characters'
            else:
                cleaned_data['title'] = title

        if 'description' in data:
            cleaned_data['description'] = str(data['description']).strip() if data['description'] else ''

        if 'category' in data:
            try:
                cleaned_data['category'] = TourCategory(str(data['category']).lower())
            except ValueError:
                valid_categories = [c.value for c in TourCategory]
                errors['category'] = f'Category must be one of: {", ".join(valid_categories)}'

        if 'location' in data:
            cleaned_data['location'] = str(data['location']).strip() if data['location'] else None

        if 'price' in data:
            price = _parse_money(data['price'], 'price', errors)
            if price is not None:
                cleaned_data['price'] = price

        if 'duration' in data:
            duration = _parse_int(data['duration'], 'duration', errors, minimum=1)
            if duration is not None:
                cleaned_data['duration'] = duration

        if 'discount' in data:
            discount = _parse_percent(data['discount'], 'discount', errors)
            if discount is not None:
                cleaned_data['discount'] = discount

        if 'availableSeats' in data:
            cleaned_data['available_seats'] = _parse_int(data['availableSeats'], 'availableSeats', errors, allow_none=True)

        if 'image' in data:
            cleaned_data['image'] = str(data['image']).strip() if data['image'] else None

        if 'active' in data:
            cleaned_data['active'] = bool(data['active'])

        return len(errors) == 0, errors, cleaned_data

    # ===== Extra Service Schemas =====

    @staticmethod
    def validate_extra_service(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Validate extra service create (``partial=False``) or update request"""
        errors = {}
        cleaned_data = {}

        if not partial:
            for field in ['name', 'price']:
                if field not in data or data[field] is None or not str(data[field]).strip():
                    errors[field] = f'{field} is required'
            if errors:
                return False, errors, cleaned_data

        if 'name' in data:
            name = str(data['name'] or '').strip()
            if not name:
                errors['name'] = 'Name cannot be empty'
            else:
                cleaned_data['name'] = name

        if 'code' in data and data['code']:
            from gnb_transfer.models import ExtraService
            cleaned_data['code'] = ExtraService.code_from_key(str(data['code']))

        if 'description' in data:
            cleaned_data['description'] = str(data['description']).strip() if data['description'] else None

        if 'price' in data:
            price = _parse_money(data['price'], 'price', errors)
            if price is not None:
                cleaned_data['price'] = price

        if 'priceType' in data:
            try:
                cleaned_data['price_type'] = PriceType(str(data['priceType']).lower())
            except ValueError:
                errors['priceType'] = 'Price type must be one of: fixed, per_unit'

        if 'maxQuantity' in data:
            quantity = _parse_int(data['maxQuantity'], 'maxQuantity', errors, minimum=1)
            if quantity is not None:
                cleaned_data['max_quantity'] = quantity

        if 'sortOrder' in data:
            order = _parse_int(data['sortOrder'], 'sortOrder', errors)
            if order is not None:
                cleaned_data['sort_order'] = order

        if 'active' in data:
            cleaned_data['active'] = bool(data['active'])

        return len(errors) == 0, errors, cleaned_data

    # ===== Booking Management Schemas =====

    @staticmethod
    def validate_booking_update(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Validate booking update request"""
        errors = {}
        cleaned_data = {}

        if 'status' in data:
            valid_statuses = [s.value for s in BookingStatus]
            status = str(data['status']).lower()
            if status not in valid_statuses:
                errors['status'] = f'Status must be one of: {", ".join(valid_statuses)}'
            else:
                cleaned_data['status'] = BookingStatus(status)

        if 'notes' in data:
            cleaned_data['notes'] = str(data['notes']).strip()[:500] if data['notes'] else None

        if not cleaned_data and not errors:
            errors['status'] = 'Nothing to update'

        return len(errors) == 0, errors, cleaned_data

    # ===== System Settings Schemas =====

    @staticmethod
    def validate_system_settings(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """Map the camelCase settings payload onto SettingsService field names"""
        errors = {}
        cleaned_data = {}

        if 'siteStatus' in data:
            try:
                cleaned_data['site_status'] = SiteStatus(str(data['siteStatus']).lower()).value
            except ValueError:
                errors['siteStatus'] = 'Site status must be one of: online, maintenance'

        if 'maintenanceMessage' in data:
            cleaned_data['maintenance_message'] = str(data['maintenanceMessage'] or '').strip()

        for field, key in [('bookingEnabled', 'booking_enabled'),
                           ('paymentEnabled', 'payment_enabled'),
                           ('registrationsEnabled', 'registrations_enabled')]:
            if field in data:
                if not isinstance(data[field], bool):
                    errors[field] = f'{field} must be a boolean'
                else:
                    cleaned_data[key] = data[field]

        if not cleaned_data and not errors:
            errors['settings'] = 'No settings to update'

        return len(errors) == 0, errors, cleaned_data

    # ===== Pagination & Filtering Schemas =====

    @staticmethod
    def validate_pagination(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and clean pagination parameters"""
        page = 1
        per_page = 20

        if 'page' in data:
            try:
                page = max(1, int(data['page']))
            except (ValueError, TypeError):
                pass

        if 'perPage' in data:
            try:
                per_page = min(100, max(1, int(data['perPage'])))
            except (ValueError, TypeError):
                pass

        return {'page': page, 'per_page': per_page}

    @staticmethod
    def validate_date_range(data: Dict[str, Any]) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Validate and parse date range parameters"""
        start_date = None
        end_date = None

        if data.get('startDate'):
            try:
                start_date = parse_datetime(data['startDate'])
            except (ValueError, TypeError, OverflowError):
                pass

        if data.get('endDate'):
            try:
                end_date = parse_datetime(data['endDate'])
            except (ValueError, TypeError, OverflowError):
                pass

        return start_date, end_date
