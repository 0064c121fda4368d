"""OTP and bearer-token secrets for the patient portal.

Only keyed hashes are persisted. Lookups by token use the hash as an index key,
so the hash has to be deterministic for a given secret.
"""
import hashlib
import hmac
import secrets

from clinicrm.core.config import settings

OTP_DIGITS = 6

def hash_secret(value: str) -> str:
    return hmac.new(settings.PORTAL_HASH_SECRET.encode(), value.encode(), hashlib.sha256).hexdigest()

def secrets_match(value: str, stored_hash: str | None) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_secret(value), stored_hash)

def generate_otp() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_DIGITS))

def generate_token() -> str:
    return secrets.token_urlsafe(32)
