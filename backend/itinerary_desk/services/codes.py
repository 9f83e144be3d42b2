from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone

# 32 symbols; 0/O and 1/I are left out so codes survive being read aloud.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
CODE_PATTERN = re.compile(rf"^IT-\d{{4}}-[{CODE_ALPHABET}]{{{CODE_LENGTH}}}$")


def generate_itinerary_code(now: datetime | None = None) -> str:
    """Return a fresh lookup code such as ``IT-2025-A7X9B2``.

    Uniqueness is left to the database; callers retry on a constraint violation.
    """
    year = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).year
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"IT-{year:04d}-{suffix}"


def normalize_code(raw: str) -> str:
    return raw.strip().upper()


def is_valid_code(code: str) -> bool:
    return bool(CODE_PATTERN.match(code))
