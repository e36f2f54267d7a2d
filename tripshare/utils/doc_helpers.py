# tripshare/utils/doc_helpers.py
"""
Small helpers shared by the crud layer for building store documents.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping


def utcnow() -> datetime:
    """Timezone-aware 'now'; the default clock everywhere."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def compact(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Drop keys whose value is None.

    The store rejects null fields, and a partial update must never blank out
    a value the caller did not mention.
    """
    return {k: v for k, v in fields.items() if v is not None}


def normalize_email(email: str) -> str:
    return email.strip().lower()
