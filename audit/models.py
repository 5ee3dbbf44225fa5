# audit/models.py
from django.db import models
from django.conf import settings
from django.utils import timezone


class AuditAction(models.TextChoices):
    AUCTION_CREATED = 'auction_created', 'Auction Created'
    BID_PLACED = 'bid_placed', 'Bid Placed'
    BID_UPDATED = 'bid_updated', 'Bid Updated'
    BID_CANCELLED = 'bid_cancelled', 'Bid Cancelled'
    AUCTION_COMPLETED = 'auction_completed', 'Auction Completed'
    AUCTION_CANCELLED = 'auction_cancelled', 'Auction Cancelled'
    WINNER_REASSIGNED = 'winner_reassigned', 'Winner Reassigned'
    AUCTION_REOPENED = 'auction_reopened', 'Auction Reopened'
    ENDING_SOON_NOTIFIED = 'ending_soon_notified', 'Ending Soon Notified'


class AuditEntry(models.Model):
    """Append-only record of one auction transition."""

    auction = models.ForeignKey('auctions.Auction', on_delete=models.CASCADE, related_name='audit_entries')
    # null when the transition was triggered by the scheduler
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name='audit_entries'
    )
    action = models.CharField(max_length=40, choices=AuditAction.choices)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['auction', 'created_at'], name='audit_auction_created_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit entries are immutable once written.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit entries cannot be deleted.")

    def __str__(self):
        return f"{self.action} on {self.auction_id}"
