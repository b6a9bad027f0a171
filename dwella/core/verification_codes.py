"""Numeric postcard codes and their keyed hashes. Raw codes are never stored."""

import hashlib
import hmac
import secrets

MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 8


def clamp_code_length(length: int) -> int:
    return min(max(length, MIN_CODE_LENGTH), MAX_CODE_LENGTH)


def generate_numeric_code(length: int = MIN_CODE_LENGTH) -> str:
    """Return a random numeric code of ``length`` digits, clamped to 6..8."""
    return "".join(str(secrets.randbelow(10)) for _ in range(clamp_code_length(length)))


class VerificationCodeHasher:
    """Hashes codes with a process-wide secret supplied at construction."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Verification code secret must not be empty")
        self._secret = secret

    def hash(self, code: str) -> str:
        return hashlib.sha256(f"{code}:{self._secret}".encode("utf-8")).hexdigest()

    def matches(self, code: str, code_hash: str | None) -> bool:
        if not code_hash:
            return False
        return hmac.compare_digest(self.hash(code), code_hash)
