"""
Identity models for the chat backend.

Chat code only ever needs two things from a user: the integer id that
rooms and personal channels are built from, and a name to show next to
messages and presence events (``User.display_name``).

Profile rows are created by signals.py as soon as a User is saved.
"""

import re

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models.functions import Lower

from authentication.managers import UserManager
from core.models import BaseModel

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")

# Names that would read as system accounts in a conversation list
RESERVED_USERNAMES = frozenset({
    "admin", "root", "system", "support", "staff", "moderator", "bot",
    "anonymous", "chat", "presence", "null", "undefined",
})


def validate_username_format(value):
    if not USERNAME_PATTERN.match(value):
        raise ValidationError(
            "Use 3-30 letters, digits, underscores or hyphens."
        )


def validate_username_not_reserved(value):
    if value.lower() in RESERVED_USERNAMES:
        raise ValidationError(f"'{value}' is reserved.")


class User(AbstractBaseUser, PermissionsMixin):
    """
    Account that logs in with an email address.

    Messages, presence records and connection requests all point at this
    model; inactive users can neither open a socket nor receive messages.
    """

    email = models.EmailField(unique=True, help_text="Login email")
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive accounts are rejected at the websocket handshake.",
    )
    is_staff = models.BooleanField(default=False, help_text="Admin site access")
    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    @property
    def _email_name(self):
        return self.email.split("@")[0]

    def _profile_or_none(self):
        try:
            return self.profile
        except Profile.DoesNotExist:
            return None

    def get_full_name(self):
        profile = self._profile_or_none()
        return (profile and profile.full_name) or self.email

    @property
    def display_name(self) -> str:
        """Profile username, else full name, else the part of the email before '@'."""
        profile = self._profile_or_none()
        if profile is None:
            return self._email_name
        return profile.username or profile.full_name or self._email_name


class Profile(BaseModel):
    """
    Public-facing name data for a user.

    ``username`` is optional; when set it is unique regardless of case.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        primary_key=True,
    )
    username = models.CharField(
        max_length=30,
        blank=True,
        db_index=True,
        validators=[validate_username_format, validate_username_not_reserved],
        help_text="Handle shown in conversations",
    )
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                Lower("username"),
                condition=models.Q(username__gt=""),
                name="profile_username_ci_unique",
            ),
        ]

    def __str__(self):
        return self.username or str(self.user)

    @property
    def full_name(self):
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def clean(self):
        super().clean()
        if self.username:
            self.username = self.username.lower()
