from flask import current_app

from gnb_transfer.api import api_bp
from gnb_transfer.services.settings import get_settings_service
from gnb_transfer.utils.api_response import APIResponse


@api_bp.route('/settings/status', methods=['GET'])
def get_site_status():
    """Public site status, polled by the storefront to show the maintenance banner"""
    try:
        settings = get_settings_service().get_system_settings()
        data = settings.to_dict()
        data['acceptingBookings'] = settings.accepting_bookings
        return APIResponse.success(data=data)

    except Exception as e:
        current_app.logger.error(f"Site status error: {str(e)}")
        return APIResponse.error("Failed to fetch site status", status_code=500)
