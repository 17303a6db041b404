"""
User models for the referral platform
Email-based authentication with the KYC profile exposed to referrers.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication"""

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any) -> User:
        """Create and return a regular user with email and password"""
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any) -> User:
        """Create and return a superuser with email and password"""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Platform user. Staff users approve referral payouts; every other user
    can refer and be referred.
    """

    KYC_STATUS_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ('PENDING', _('Pending')),
        ('IN_REVIEW', _('In Review')),
        ('VERIFIED', _('Verified')),
        ('REJECTED', _('Rejected')),
    )

    # Basic information
    username = None  # Remove username field, using email instead
    email = models.EmailField(_('email address'), unique=True)
    phone = models.CharField(max_length=20, blank=True)
    country = models.CharField(
        max_length=2,
        blank=True,
        help_text=_('ISO 3166-1 alpha-2 country code')
    )

    # Compliance
    kyc_status = models.CharField(max_length=20, choices=KYC_STATUS_CHOICES, default='PENDING')
    kyc_verified_at = models.DateTimeField(null=True, blank=True)

    # Audit fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Custom manager
    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS: ClassVar[list[str]] = []

    class Meta:
        db_table = 'users'
        verbose_name = _('User')
        verbose_name_plural = _('Users')
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['email']),
            models.Index(fields=['kyc_status']),
        )

    def __str__(self) -> str:
        return f"{self.get_full_name()} ({self.email})"

    def get_full_name(self) -> str:
        """Get user's full name or email if name not available"""
        full_name = super().get_full_name()
        return full_name if full_name.strip() else self.email

    @property
    def name(self) -> str:
        return super().get_full_name().strip()

    def public_profile(self) -> dict[str, Any]:
        """Fields a referrer is allowed to see about the users they referred."""
        return {
            'id': self.pk,
            'email': self.email,
            'name': self.name,
            'kyc_status': self.kyc_status,
            'created_at': self.created_at,
        }
