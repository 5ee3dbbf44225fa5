from .models import AuditEntry


def log_auction_activity(auction, action, actor=None, details=None, at=None):
    """Append an audit entry for *auction*. ``actor`` is None for system transitions."""
    entry = AuditEntry(
        auction=auction,
        actor=actor,
        action=action,
        details=details or {},
    )
    if at is not None:
        entry.created_at = at
    entry.save()
    return entry
