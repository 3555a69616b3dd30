"""Random credentials for generated services."""

from __future__ import annotations

import random
import secrets
import string

_LOWER_DIGITS = string.ascii_lowercase + string.digits
_PASSWORD_ALPHABET = string.ascii_letters + string.digits
_TOKEN_ALPHABET = string.hexdigits.lower()[:16]


class CredentialGenerator:
    """
    Produces usernames, passwords and tokens from an injectable random source.

    The default source is ``secrets.SystemRandom``. Tests pass
    ``random.Random(seed)`` to get reproducible output.
    """

    def __init__(self, rng: random.Random | None = None):
        """
        Initialise the generator.

        Args:
            rng: Random source; defaults to a cryptographically secure one.

        """
        self._rng = rng if rng is not None else secrets.SystemRandom()

    def _choose(self, alphabet: str, length: int) -> str:
        if length <= 0:
            raise ValueError("length must be positive")
        return "".join(self._rng.choice(alphabet) for _ in range(length))

    def username(self, prefix: str = "user") -> str:
        """Return ``<prefix>_<6 random chars>``."""
        return f"{prefix}_{self._choose(_LOWER_DIGITS, 6)}"

    def password(self, length: int = 24) -> str:
        """
        Return an alphanumeric password.

        Letters and digits only; the value is embedded unquoted in scripts
        and connection URLs.
        """
        return self._choose(_PASSWORD_ALPHABET, length)

    def token(self, length: int = 32) -> str:
        """Return a lower-case hex token."""
        return self._choose(_TOKEN_ALPHABET, length)
