"""
Webhook Security Module

Signature verification for Stripe webhooks. Stripe signs
"{timestamp}.{raw body}" with HMAC-SHA256 and sends the result in the
Stripe-Signature header as "t=<timestamp>,v1=<hex signature>[,v1=...]".
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def parse_stripe_signature_header(header: str) -> tuple[Optional[str], list[str]]:
    """Split a Stripe-Signature header into its timestamp and v1 signatures"""
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def verify_timestamp(
    timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS, now: Optional[float] = None
) -> bool:
    """
    Verify webhook timestamp is within acceptable range.
    Prevents replay attacks by rejecting old webhooks.
    """
    try:
        webhook_time = int(timestamp)
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    age = abs(int(now if now is not None else time.time()) - webhook_time)
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


async def verify_stripe_webhook(request: Request, secret: str) -> bytes:
    """
    Verify a Stripe webhook signature.

    Returns:
        The raw request body, exactly as signed

    Raises:
        HTTPException(400) when the signature is missing, stale or wrong
    """
    # Get raw body BEFORE any parsing
    raw_body = await request.body()
    signature_header = request.headers.get("stripe-signature", "")

    if not signature_header:
        logger.error("❌ No Stripe signature found")
        raise HTTPException(status_code=400, detail="No signature")

    timestamp, signatures = parse_stripe_signature_header(signature_header)
    if not timestamp or not signatures:
        logger.error(f"❌ Invalid signature format: {signature_header[:40]}...")
        raise HTTPException(status_code=400, detail="Invalid signature")

    if not verify_timestamp(timestamp):
        raise HTTPException(status_code=400, detail="Webhook timestamp expired")

    expected = compute_hmac_sha256(secret, timestamp.encode("utf-8") + b"." + raw_body)
    if not any(constant_time_compare(expected, candidate) for candidate in signatures):
        logger.error("❌ Stripe webhook signature mismatch")
        raise HTTPException(status_code=400, detail="Invalid signature")

    logger.info("✅ Stripe webhook signature verified")
    return raw_body
