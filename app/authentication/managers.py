"""
Manager for the email-login User model.
"""

from django.contrib.auth.models import BaseUserManager


class UserManager(BaseUserManager):
    """
    Creates users keyed by email.

    ``username``, ``first_name`` and ``last_name`` live on Profile, not
    User. They are accepted here and written to the profile that the
    post_save signal has just created:

        User.objects.create_user("alice@example.com", "secret", username="alice")
    """

    PROFILE_FIELDS = ("username", "first_name", "last_name")

    def create_user(self, email, password=None, **fields):
        if not email:
            raise ValueError("An email address is required")

        profile_values = {
            key: fields.pop(key) for key in self.PROFILE_FIELDS if key in fields
        }
        fields.setdefault("is_staff", False)
        fields.setdefault("is_superuser", False)

        user = self.model(email=self.normalize_email(email), **fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)

        if profile_values:
            profile = user.profile
            for key, value in profile_values.items():
                setattr(profile, key, value)
            profile.save(update_fields=[*profile_values, "updated_at"])

        return user

    def create_superuser(self, email, password=None, **fields):
        fields.setdefault("is_staff", True)
        fields.setdefault("is_superuser", True)
        if not (fields["is_staff"] and fields["is_superuser"]):
            raise ValueError("Superusers need is_staff and is_superuser set")
        return self.create_user(email, password, **fields)
