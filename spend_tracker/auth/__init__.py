"""Authentication package."""

from spend_tracker.auth.credentials import AuthenticationError, BcryptCredentialVerifier

__all__ = ["AuthenticationError", "BcryptCredentialVerifier"]
