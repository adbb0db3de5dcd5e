"""
Credential Verification

Passwords are stored as bcrypt hashes. This module only hashes and
compares; looking up the user is the ledger's job.
"""

import bcrypt


class AuthenticationError(Exception):
    """Email unknown or password does not match."""
    pass


class BcryptCredentialVerifier:
    """Hash and verify passwords with bcrypt."""

    def __init__(self, rounds: int = 12):
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Compare a plaintext password with a stored hash.

        A malformed hash counts as a mismatch.
        """
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                password_hash.encode("utf-8"),
            )
        except ValueError:
            return False
