# auctions/clock.py
"""Single source of truth for "has this auction's deadline passed".

Services take an optional ``now``; when omitted the wall clock is used.
Tests pass an explicit ``now`` instead of patching time.
"""
from datetime import datetime
from typing import Optional

from django.db.models import Q
from django.utils import timezone


def resolve_now(now: Optional[datetime] = None) -> datetime:
    return now if now is not None else timezone.now()


def is_expired(auction, now: datetime) -> bool:
    return auction.end_time <= now


def expired_q(now: datetime) -> Q:
    """Queryset form of :func:`is_expired`."""
    return Q(end_time__lte=now)
