"""
Authentication application.

Owns the identity the chat core reads: users log in with their email and
are shown to other users by their profile username.

Key components:
    - User model: Email-based custom user
    - Profile model: Display data (username, first/last name)
    - JWT endpoints: simplejwt token obtain/refresh, registration, "me"

Usage:
    from authentication.models import User, Profile
"""
