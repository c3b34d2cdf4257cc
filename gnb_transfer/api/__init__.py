"""
Public API Blueprint
Catalog, coupon checks, quotes and booking creation
"""
from flask import Blueprint

api_bp = Blueprint('api', __name__, url_prefix='/api')

# Import routes after blueprint creation to avoid circular imports
from . import tours, coupons, bookings, status
