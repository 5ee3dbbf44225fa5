# auctions/resolver.py
"""Winner selection for lowest-price (reverse) auctions.

Pure functions over anything exposing ``id``, ``amount`` and ``created_at``,
so they work on saved ``Bid`` rows and on plain test doubles alike.
"""
from collections import Counter
from typing import Iterable, Optional

LOWEST = 'lowest'
LOWEST_UNIQUE = 'lowest_unique'

POLICIES = (LOWEST, LOWEST_UNIQUE)


def _rank(bid):
    # id makes the order total, so input order never matters
    return (bid.amount, bid.created_at, str(bid.id))


def resolve_winner(bids: Iterable, policy: str = LOWEST) -> Optional[object]:
    """Return the winning bid, or None when nothing qualifies.

    ``lowest``: minimum amount wins, ties go to the earliest bid.
    ``lowest_unique``: amounts offered by more than one bid are
    disqualified and the lowest amount offered exactly once wins.
    """
    if policy not in POLICIES:
        raise ValueError(f"Unknown winner policy: {policy!r}")

    candidates = [b for b in bids if b.amount is not None and b.amount > 0]
    if not candidates:
        return None

    if policy == LOWEST_UNIQUE:
        counts = Counter(b.amount for b in candidates)
        candidates = [b for b in candidates if counts[b.amount] == 1]
        if not candidates:
            return None

    return min(candidates, key=_rank)
