# utils/otp.py
import logging
import secrets
from datetime import datetime, timedelta, timezone

from config import settings
from utils.hashing import hash_otp

logger = logging.getLogger(__name__)

OTP_LENGTH = 6

def generate_otp() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))

def issue_otp(user) -> str:
    """Attach a fresh verification code to ``user`` and return it in clear text.

    Only the hash and the expiry are stored on the user; the caller commits.
    """
    otp = generate_otp()
    user.otp_hash = hash_otp(otp)
    user.otp_expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
    return otp

def is_well_formed(otp: str) -> bool:
    return len(otp) == OTP_LENGTH and otp.isdigit()

def otp_matches(user, otp: str) -> bool:
    if not user.otp_hash or not user.otp_expires_at:
        return False
    expires_at = user.otp_expires_at
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at < datetime.now(timezone.utc):
        return False
    return secrets.compare_digest(user.otp_hash, hash_otp(otp))

def deliver_otp(email: str, otp: str) -> None:
    # Mail transport is not part of this service; the code is handed to the log
    logger.info("Verification code for %s: %s (valid %s min)", email, otp, settings.OTP_EXPIRE_MINUTES)
