"""
Serializers for authentication endpoints.

- UserSerializer: Public shape of a user, embedded in chat and connection
  responses
- RegisterSerializer: Email/password sign-up with an optional username
"""

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from authentication.models import (
    Profile,
    User,
    validate_username_format,
    validate_username_not_reserved,
)


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model (read operations).

    Includes the display name used in socket events so HTTP and socket
    clients render users the same way.
    """

    username = serializers.CharField(source="profile.username", read_only=True)
    display_name = serializers.CharField(read_only=True)
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "display_name",
            "full_name",
            "date_joined",
        ]
        read_only_fields = fields

    def get_full_name(self, obj):
        return obj.get_full_name()


class RegisterSerializer(serializers.Serializer):
    """Create a user account from email, password and optional profile data."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    username = serializers.CharField(required=False, allow_blank=True, max_length=30)
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=150)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value.lower()

    def validate_username(self, value):
        if not value:
            return value
        try:
            validate_username_format(value)
            validate_username_not_reserved(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        if Profile.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("This username is already taken.")
        return value.lower()

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        return value

    def create(self, validated_data):
        return User.objects.create_user(**validated_data)
