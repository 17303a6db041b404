"""
Common middleware for the referral platform
Request correlation and security headers.
"""

import logging
import uuid
from collections.abc import Callable

from django.http import HttpRequest, HttpResponse

from apps.common.logging import clear_request_context, set_request_context, set_request_id

logger = logging.getLogger(__name__)

# ===============================================================================
# REQUEST ID MIDDLEWARE
# ===============================================================================


class RequestIDMiddleware:
    """Add unique request ID for tracing and log correlation"""

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        # Honour an upstream gateway ID so traces line up across services
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.META["REQUEST_ID"] = request_id

        set_request_id(request_id)
        set_request_context(ip_address=request.META.get("REMOTE_ADDR"))
        try:
            response = self.get_response(request)
        finally:
            clear_request_context()

        # Add to response headers for debugging
        response["X-Request-ID"] = request_id

        return response


# ===============================================================================
# SECURITY MIDDLEWARE
# ===============================================================================


class SecurityHeadersMiddleware:
    """Add security headers to every API response"""

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        response = self.get_response(request)

        response["X-Content-Type-Options"] = "nosniff"
        response["X-Frame-Options"] = "DENY"
        response["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
