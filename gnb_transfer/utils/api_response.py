from flask import jsonify


class APIResponse:
    """Standardized API response format"""

    @staticmethod
    def success(data=None, message=None, status_code=200):
        """Success response"""
        response = {
            'success': True,
            'message': message or 'Operation successful'
        }
        if data is not None:
            response['data'] = data
        return jsonify(response), status_code

    @staticmethod
    def error(message, errors=None, status_code=400, error_code=None, data=None):
        """
        Error response

        ``error_code`` is a stable machine string (e.g. ``coupon_expired``) the
        client can match on; ``message`` is for humans.
        """
        response = {
            'success': False,
            'message': message
        }
        if errors:
            response['errors'] = errors
        if error_code:
            response['error'] = error_code
        if data is not None:
            response['data'] = data
        return jsonify(response), status_code

    @staticmethod
    def validation_error(errors, message="Validation failed"):
        """Validation error response"""
        return APIResponse.error(message, errors=errors, status_code=422, error_code='validation_error')

    @staticmethod
    def unauthorized(message="Unauthorized access"):
        """Unauthorized response"""
        return APIResponse.error(message, status_code=401)

    @staticmethod
    def forbidden(message="Forbidden"):
        """Forbidden response"""
        return APIResponse.error(message, status_code=403)

    @staticmethod
    def not_found(message="Resource not found"):
        """Not found response"""
        return APIResponse.error(message, status_code=404)

    @staticmethod
    def service_unavailable(message="Service temporarily unavailable", error_code=None):
        return APIResponse.error(message, status_code=503, error_code=error_code)
