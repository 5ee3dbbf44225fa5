# auctions/models.py
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .clock import expired_q, is_expired


class VehicleType(models.TextChoices):
    THREE_WHEELER = 'three_wheeler', '3 Wheeler'
    PICKUP_TRUCK = 'pickup_truck', 'Pickup Truck'
    MINI_TRUCK = 'mini_truck', 'Mini Truck'
    MEDIUM_TRUCK = 'medium_truck', 'Medium Truck'
    LARGE_TRUCK = 'large_truck', 'Large Truck'


class AuctionStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class AuctionQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=AuctionStatus.ACTIVE)

    def due(self, now):
        """Active auctions whose deadline has passed at *now*."""
        return self.active().filter(expired_q(now))


class Auction(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='auctions')

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    vehicle_type = models.CharField(max_length=30, choices=VehicleType.choices)
    consignment_date = models.DateTimeField(null=True, blank=True)

    start_time = models.DateTimeField()
    end_time = models.DateTimeField()

    status = models.CharField(max_length=20, choices=AuctionStatus.choices, default=AuctionStatus.ACTIVE)
    winner = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name='won_auctions'
    )
    winning_bid = models.ForeignKey(
        'Bid', null=True, blank=True,
        on_delete=models.SET_NULL, related_name='+'
    )
    # set once the "ending soon" reminder went out; cleared on reopen
    ending_soon_notified_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    objects = AuctionQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'end_time'], name='auction_status_end_idx'),
            models.Index(fields=['created_by', '-created_at'], name='auction_creator_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_time__gt=F('start_time')),
                name='auction_end_after_start',
            ),
            models.CheckConstraint(
                condition=(
                    Q(winner__isnull=True, winning_bid__isnull=True)
                    | Q(winner__isnull=False, winning_bid__isnull=False, status=AuctionStatus.COMPLETED)
                ),
                name='auction_winner_fields_consistent',
            ),
        ]

    def __str__(self):
        return f"{self.title} (#{self.id})"

    def is_expired(self, now=None):
        return is_expired(self, now or timezone.now())

    def is_open_for_bids(self, now=None):
        return self.status == AuctionStatus.ACTIVE and not self.is_expired(now)


class BidQuerySet(models.QuerySet):
    def live(self):
        return self.filter(withdrawn_at__isnull=True)


class Bid(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    auction = models.ForeignKey(Auction, on_delete=models.CASCADE, related_name='bids')
    bidder = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bids')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    is_winning_bid = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    # a winner who backs out keeps the row for history; it never competes again
    withdrawn_at = models.DateTimeField(null=True, blank=True)

    objects = BidQuerySet.as_manager()

    class Meta:
        ordering = ['amount', 'created_at']
        indexes = [
            models.Index(fields=['auction', 'amount', 'created_at'], name='bid_ranking_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['auction', 'bidder'],
                condition=Q(withdrawn_at__isnull=True),
                name='one_live_bid_per_bidder',
            ),
            models.CheckConstraint(condition=Q(amount__gt=0), name='bid_amount_positive'),
        ]

    def __str__(self):
        return f"Bid {self.amount} on {self.auction_id} by {self.bidder_id}"
