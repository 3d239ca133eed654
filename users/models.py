"""User model for storefront accounts.

Extends Django's `AbstractUser` with a unique, normalized email and an
optional phone number, both usable as sign-in identifiers.
"""

from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models


class User(AbstractUser):
    """Custom user with unique email and optional E.164 phone."""

    email = models.EmailField(unique=True)
    phone = models.CharField(
        max_length=16,
        blank=True,
        validators=[RegexValidator(r"^\+?[1-9]\d{1,14}$", message="Use E.164 format (e.g., +27821234567)")],
        help_text="Primary contact number for the account in E.164 format",
    )

    def save(self, *args, **kwargs):
        """Normalize email and phone so identifier lookups are reliable."""
        if self.email:
            self.email = self.email.strip().lower()
        if self.phone:
            self.phone = self.phone.strip()
        super().save(*args, **kwargs)
