import hashlib
import re
from typing import Iterable, Optional

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9-]")


def content_checksum(data: bytes) -> str:
    """SHA-256 hexdigest of an uploaded file, kept on the ingestion log."""
    return hashlib.sha256(data).hexdigest()


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def rolling_hash(text: str) -> str:
    """
    32-bit multiplicative rolling hash rendered in base 36.

    Not cryptographic. Identical input always yields identical output, which
    is all the upsert keys built from it rely on.
    """
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    # interpret as signed 32-bit, then take the magnitude
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h))


def sanitize_identifier(value: str) -> str:
    """Replace anything outside [A-Za-z0-9-] with a dash."""
    return _UNSAFE_ID_CHARS.sub("-", str(value))


def synthesize_id(
    prefix: str,
    explicit_ids: Iterable[Optional[str]],
    identity_fields: Iterable[Optional[str]],
    ordinal: int,
) -> str:
    """
    Deterministic record identifier.

    The first non-empty explicit id wins. Otherwise the identity fields are
    hashed together with the row ordinal so that rows with blank identity
    fields do not collide.
    """
    for candidate in explicit_ids:
        if candidate and str(candidate).strip():
            return sanitize_identifier(str(candidate).strip())

    key = "|".join(str(f) for f in identity_fields if f)
    if key:
        return f"{prefix}-{rolling_hash(key)}-{ordinal}"
    return f"{prefix}-row-{ordinal}"
