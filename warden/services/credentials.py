"""Password hashing and verification."""

import bcrypt

from warden.errors import InternalError

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


class CredentialManager:
    """Derives and checks salted bcrypt hashes.

    Hashes are self-describing (``$2b$<cost>$<salt><digest>``), so verification
    needs no parameters beyond the stored string.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Verified against when the account does not exist, so a miss costs the same as a wrong password.
        self._dummy_hash = self.hash(bcrypt.gensalt().decode("utf-8"))

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """Hash a plain-text password for storage."""
        return bcrypt.hashpw(self._encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. Raises InternalError if the hash is malformed."""
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("utf-8"))
        except ValueError as e:
            raise InternalError("Error comparing passwords") from e

    def burn(self, password: str) -> None:
        """Spend one verification on the dummy hash."""
        bcrypt.checkpw(self._encode(password), self._dummy_hash.encode("utf-8"))
