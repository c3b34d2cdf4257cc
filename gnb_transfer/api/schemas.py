"""
Public API Validation Schemas
Request validation for coupon checks, quotes and booking creation
"""
import re
from typing import Any, Dict, List, Tuple

from gnb_transfer.models.enums import PassengerType, PaymentMethod
from gnb_transfer.services.pricing import MAX_AMOUNT, quantize, to_decimal
from gnb_transfer.utils.dates import parse_date

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
TIME_PATTERN = re.compile(r'^([01]?[0-9]|2[0-3]):[0-5][0-9]$')
COUNTRY_CODE_PATTERN = re.compile(r'^\+\d{1,4}$')

# field -> (min, max, default)
GUEST_LIMITS = {
    'adultsCount': (1, 50, 1),
    'childrenCount': (0, 50, 0),
    'infantsCount': (0, 20, 0),
}

PASSENGERS_COUNT_MESSAGE = 'Passenger names are required for every adult and child'
PASSENGER_NAMES_MESSAGE = 'All passenger names are required'


class BookingSchemas:
    """Validation schemas for the public booking endpoints"""

    @staticmethod
    def validate_coupon_check(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        errors = {}
        cleaned_data = {}

        code = str(data.get('code') or '').strip()
        amount = to_decimal(data.get('bookingAmount'))

        if not code or amount <= 0:
            errors['code'] = 'Code and booking amount are required'
            return False, errors, cleaned_data
        if amount > MAX_AMOUNT:
            errors['bookingAmount'] = f'Booking amount cannot exceed {MAX_AMOUNT}'
            return False, errors, cleaned_data

        cleaned_data['code'] = code
        cleaned_data['booking_amount'] = amount
        cleaned_data['tour_id'] = str(data['tourId']).strip() if data.get('tourId') else None
        return True, errors, cleaned_data

    @staticmethod
    def validate_quote(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """
        Validate the pricing part of a booking request

        Returns:
            (is_valid, errors, cleaned_data)
        """
        errors = {}
        cleaned_data = {}

        tour_id = str(data.get('tourId') or '').strip()
        if not tour_id:
            errors['tourId'] = 'Tour is required'
        else:
            cleaned_data['tour_id'] = tour_id

        for field, (low, high, default) in GUEST_LIMITS.items():
            value = data.get(field, default)
            if value is None or value == '':
                value = default
            try:
                if isinstance(value, bool) or int(value) != float(value):
                    raise ValueError(field)
                count = int(value)
            except (ValueError, TypeError, OverflowError):
                errors[field] = f'{field} must be a whole number'
                continue
            if count < low or count > high:
                errors[field] = f'{field} must be between {low} and {high}'
            else:
                cleaned_data[_snake(field)] = count

        extras = data.get('extraServices') or {}
        if not isinstance(extras, dict):
            errors['extraServices'] = 'Extra services must be an object'
        else:
            selections, extra_errors = BookingSchemas._clean_extra_services(extras)
            if extra_errors:
                errors.update(extra_errors)
            else:
                cleaned_data['extra_services'] = selections

        discount_code = str(data.get('discountCode') or '').strip()
        cleaned_data['discount_code'] = discount_code or None

        return len(errors) == 0, errors, cleaned_data

    @staticmethod
    def validate_booking_create(data: Dict[str, Any]) -> Tuple[bool, Dict[str, str], Dict[str, Any]]:
        """
        Validate booking creation request

        Prices sent by the client are not trusted: ``totalPrice`` is kept
        only as ``submitted_total_price`` for auditing.

        Returns:
            (is_valid, errors, cleaned_data)
        """
        is_valid, errors, cleaned_data = BookingSchemas.validate_quote(data)

        name = str(data.get('name') or '').strip()
        if len(name) < 2:
            errors['name'] = 'Name must be at least 2 characters'
        elif len(name) > 100:
            errors['name'] = 'Name cannot exceed 100 characters'
        else:
            cleaned_data['name'] = name

        email = str(data.get('email') or '').strip().lower()
        if not email:
            errors['email'] = 'Email is required'
        elif not EMAIL_PATTERN.match(email):
            errors['email'] = 'Invalid email format'
        else:
            cleaned_data['email'] = email

        phone = str(data.get('phone') or '').strip()
        if phone:
            digits = re.sub(r'\D', '', phone)
            if len(digits) < 6 or len(phone) > 20:
                errors['phone'] = 'Phone number must be between 6 and 20 digits'
            else:
                cleaned_data['phone'] = phone

        country_code = str(data.get('phoneCountryCode') or '').strip()
        if country_code:
            if not COUNTRY_CODE_PATTERN.match(country_code):
                errors['phoneCountryCode'] = 'Country code must be in format +XX or +XXX'
            else:
                cleaned_data['phone_country_code'] = country_code

        if not data.get('date'):
            errors['date'] = 'Date is required'
        else:
            try:
                cleaned_data['date'] = parse_date(data['date'])
            except (ValueError, TypeError, OverflowError):
                errors['date'] = 'Invalid date format. Use YYYY-MM-DD'

        time_value = str(data.get('time') or '').strip()
        if time_value:
            if not TIME_PATTERN.match(time_value):
                errors['time'] = 'Time must be in HH:MM format'
            else:
                cleaned_data['time'] = time_value

        flight_number = str(data.get('flightNumber') or '').strip().upper()
        if flight_number:
            if len(flight_number) < 2 or len(flight_number) > 10:
                errors['flightNumber'] = 'Flight number must be between 2 and 10 characters'
            else:
                cleaned_data['flight_number'] = flight_number

        pickup = str(data.get('pickupLocation') or '').strip()
        if pickup:
            cleaned_data['pickup_location'] = pickup[:200]

        notes = str(data.get('notes') or '').strip()
        if notes:
            cleaned_data['notes'] = notes[:500]

        payment_method = str(data.get('paymentMethod') or PaymentMethod.CASH.value).lower()
        try:
            cleaned_data['payment_method'] = PaymentMethod(payment_method)
        except ValueError:
            valid_methods = [m.value for m in PaymentMethod]
            errors['paymentMethod'] = f'Payment method must be one of: {", ".join(valid_methods)}'

        if 'adultsCount' not in errors and 'childrenCount' not in errors:
            passengers, passenger_error = BookingSchemas._clean_passengers(
                data.get('passengers'),
                cleaned_data['adults_count'] + cleaned_data['children_count']
            )
            if passenger_error:
                errors['passengers'] = passenger_error
            else:
                cleaned_data['passengers'] = passengers

        if data.get('totalPrice') is not None:
            cleaned_data['submitted_total_price'] = quantize(data['totalPrice'])

        return len(errors) == 0, errors, cleaned_data

    @staticmethod
    def _clean_passengers(passengers, required: int) -> Tuple[List[Dict[str, Any]], str]:
        if not isinstance(passengers, list) or len(passengers) != required:
            return [], PASSENGERS_COUNT_MESSAGE

        cleaned = []
        for passenger in passengers:
            if not isinstance(passenger, dict):
                return [], PASSENGER_NAMES_MESSAGE
            first_name = str(passenger.get('firstName') or '').strip()
            last_name = str(passenger.get('lastName') or '').strip()
            if not first_name or not last_name:
                return [], PASSENGER_NAMES_MESSAGE
            if len(first_name) > 50 or len(last_name) > 50:
                return [], 'Passenger names cannot exceed 50 characters'

            try:
                passenger_type = PassengerType(str(passenger.get('type') or 'adult').lower())
            except ValueError:
                return [], 'Passenger type must be adult, child or infant'

            cleaned.append({
                'first_name': first_name,
                'last_name': last_name,
                'passenger_type': passenger_type,
            })
        return cleaned, None

    @staticmethod
    def _clean_extra_services(extras: Dict[str, Any]) -> Tuple[Dict[str, Dict[str, Any]], Dict[str, str]]:
        """
        Normalize ``{childSeat: {selected, quantity}, ...}`` into
        ``{CHILD_SEAT: {'selected': bool, 'quantity': int|None}}``.

        Client-sent prices are dropped; the catalog price is used instead.
        """
        from gnb_transfer.models import ExtraService

        selections = {}
        errors = {}
        for key, value in extras.items():
            if isinstance(value, bool):
                value = {'selected': value}
            if not isinstance(value, dict):
                errors[f'extraServices.{key}'] = 'Invalid extra service selection'
                continue

            selected = bool(value.get('selected', False))
            quantity = value.get('quantity')
            if quantity is not None:
                try:
                    if isinstance(quantity, bool) or int(quantity) != float(quantity):
                        raise ValueError(key)
                    quantity = int(quantity)
                except (ValueError, TypeError, OverflowError):
                    errors[f'extraServices.{key}'] = 'Quantity must be a whole number'
                    continue
                if quantity < 0:
                    errors[f'extraServices.{key}'] = 'Quantity cannot be negative'
                    continue

            selections[ExtraService.code_from_key(key)] = {
                'key': key,
                'selected': selected,
                'quantity': quantity,
            }
        return selections, errors


def _snake(field: str) -> str:
    return re.sub(r'([a-z])([A-Z])', r'\1_\2', field).lower()
