"""
Admin API Blueprint
Back-office endpoints for the catalog, discount engine, bookings and site settings
"""
from flask import Blueprint

# Create admin blueprint with /api/admin prefix
admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')

# Import routes after blueprint creation to avoid circular imports
from . import campaigns, coupons, tours, extra_services, bookings, settings, audit_logs
