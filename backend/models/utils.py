"""Column defaults shared by the ORM models."""

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    """Primary keys are random UUID4 strings (String(36) columns)."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Timestamp default for created_at / updated_at.

    Also the tie-break between lots bought on the same day, so every
    record stamps itself at flush time rather than taking a caller value.
    """
    return datetime.now(timezone.utc)
