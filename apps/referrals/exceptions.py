"""
Referral domain exceptions.
"""


class ReferralError(Exception):
    """Base class for referral engine failures that callers must handle."""


class ExhaustedRetries(ReferralError):  # noqa: N818
    """No unique referral code could be generated within the attempt limit."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Failed to generate unique referral code after {attempts} attempts")
