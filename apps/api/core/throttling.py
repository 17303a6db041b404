# ===============================================================================
# API THROTTLING CLASSES 🚦
# ===============================================================================

from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class StandardAPIThrottle(UserRateThrottle):
    """Standard rate limiting for authenticated endpoints"""
    rate = '1000/hour'


class ReferralValidationThrottle(AnonRateThrottle):
    """Public code lookups, limited to slow down code enumeration"""
    scope = 'referral_validation'
    rate = '30/min'


class ReferralProcessThrottle(AnonRateThrottle):
    """Attribution calls from the registration flow"""
    scope = 'referral_process'
    rate = '60/min'
