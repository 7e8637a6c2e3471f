"""Time-boxed signatures for episode links.

A link is authorized by ``ts`` (unix seconds) and ``sig`` query
parameters, where::

    sig = sha256_hex(resource_id + str(episode_number) + ts + secret)

The pieces are concatenated without separators and ``ts`` is hashed
exactly as sent. Changing either breaks every issued link. There is no
session: anyone holding a fresh, correct signature gets the resource.
"""

import hashlib
import hmac
import re
import time

from animecatalog.security.errors import (
    InvalidTimestamp,
    SignatureExpired,
    SignatureInvalid,
    SignatureMissing,
)

MAX_SIGNATURE_AGE_SECONDS = 60

_TIMESTAMP_RE = re.compile(r"-?[0-9]+")


def compute_signature(resource_id: str, resource_number: int, timestamp: str, secret: str) -> str:
    """Lowercase hex SHA-256 over id, number, raw timestamp and secret."""
    message = f"{resource_id}{resource_number}{timestamp}{secret}"
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def parse_timestamp(timestamp: str) -> int | None:
    if not _TIMESTAMP_RE.fullmatch(timestamp):
        return None
    return int(timestamp)


def is_fresh(timestamp: int, now: int, max_age: int = MAX_SIGNATURE_AGE_SECONDS) -> bool:
    """True when 0 <= now - timestamp <= max_age. Future timestamps are not fresh."""
    return timestamp <= now and now - timestamp <= max_age


def signatures_match(expected: str, provided: str) -> bool:
    # Compare as bytes: compare_digest rejects non-ASCII str input
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def verify_signature(
    resource_id: str,
    resource_number: int,
    timestamp: str,
    signature: str,
    secret: str,
    now: int,
    max_age: int = MAX_SIGNATURE_AGE_SECONDS,
) -> bool:
    """Check a signed (id, number) pair against the secret and the time window."""
    parsed = parse_timestamp(timestamp)
    if parsed is None or not is_fresh(parsed, now, max_age):
        return False
    expected = compute_signature(resource_id, resource_number, timestamp, secret)
    return signatures_match(expected, signature)


def check_signed_request(
    resource_id: str,
    resource_number: int,
    timestamp: str | None,
    signature: str | None,
    secret: str,
    now: int | None = None,
    max_age: int = MAX_SIGNATURE_AGE_SECONDS,
) -> None:
    """Raise the matching rejection if the signed request is not acceptable.

    Same checks as verify_signature, each failure named separately so the
    caller sees why. The expected value is never exposed.
    """
    if timestamp is None or timestamp == "" or signature is None or signature == "":
        raise SignatureMissing()

    if now is None:
        now = int(time.time())

    parsed = parse_timestamp(timestamp)
    if parsed is None:
        raise InvalidTimestamp()

    if not is_fresh(parsed, now, max_age):
        raise SignatureExpired()

    expected = compute_signature(resource_id, resource_number, timestamp, secret)
    if not signatures_match(expected, signature):
        raise SignatureInvalid()


def sign_episode_link(
    resource_id: str, resource_number: int, secret: str, now: int | None = None
) -> tuple[str, str]:
    """Issue ``(ts, sig)`` query values for an episode link valid from now."""
    ts = str(int(time.time()) if now is None else now)
    return ts, compute_signature(resource_id, resource_number, ts, secret)
